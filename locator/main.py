import logging
import threading

from kivy.app import App
from kivy.clock import Clock, mainthread
from kivy.lang import Builder
from kivy.properties import BooleanProperty, StringProperty
from kivy.uix.boxlayout import BoxLayout

from .exceptions import StorageWriteError
from .services import create_services
from .workflow import STATUS_LOCATING, STATUS_SAVE_FAILED


logger = logging.getLogger(__name__)


KV = """
<RootLayout>:
    orientation: 'vertical'
    padding: dp(16)
    spacing: dp(12)

    Label:
        size_hint_y: None
        height: dp(32)
        text: 'Background fetch status: ' + app.fetch_status_text

    Label:
        size_hint_y: None
        height: dp(48)
        font_size: '24sp'
        bold: True
        text: 'Locator'

    Label:
        id: status_label
        text: app.status_text
        halign: 'center'
        valign: 'middle'
        text_size: self.size

    BoxLayout:
        size_hint_y: None
        height: dp(48)
        spacing: dp(12)
        Label:
            text: 'Share Location'
        Switch:
            active: app.sharing_enabled
            on_active: app.toggle_enabled(self.active)

    Button:
        size_hint_y: None
        height: dp(48)
        text: 'Find me!'
        on_release: app.find_me()

    BoxLayout:
        size_hint_y: None
        height: dp(48)
        spacing: dp(12)
        Label:
            text: 'Server URL'
        TextInput:
            text: app.server_url
            multiline: False
            on_text: app.on_url_changed(self.text)
"""


class RootLayout(BoxLayout):
    pass


class LocatorApp(App):
    status_text = StringProperty(STATUS_LOCATING)
    fetch_status_text = StringProperty("")
    sharing_enabled = BooleanProperty(False)
    server_url = StringProperty("")

    def build(self):
        Builder.load_string(KV)
        self.services = create_services()
        self.workflow = self.services.workflow
        self.workflow.add_listener(self._on_workflow_state)

        settings = self.services.settings_store.get()
        self.sharing_enabled = settings.enabled
        self.server_url = settings.url

        root = RootLayout()
        Clock.schedule_once(lambda *_: self.find_me(), 0)
        Clock.schedule_once(lambda *_: self.check_status(), 0)
        return root

    def on_stop(self):
        self.services.shutdown()

    # --- actions ---
    def find_me(self):
        self._in_background(self.workflow.run)

    def toggle_enabled(self, value: bool):
        if value == self.sharing_enabled:
            return
        self.sharing_enabled = value
        # Persist and (un)register here so quick toggles apply in order
        if self.workflow.apply_enabled(value):
            self._in_background(self.workflow.run)
        else:
            self.sharing_enabled = not value
        self.check_status()

    def on_url_changed(self, text: str):
        self.server_url = text
        try:
            self.workflow.set_url(text)
        except StorageWriteError:
            self.status_text = STATUS_SAVE_FAILED

    @mainthread
    def check_status(self):
        status = self.workflow.refresh_status()
        if status is not None:
            registered = "registered" if status.is_registered else "not registered"
            self.fetch_status_text = f"{status.available.value.upper()} ({registered})"

    # --- helpers ---
    def _in_background(self, target):
        # Permission prompts and GPS fixes block; keep them off the UI thread
        threading.Thread(target=target, daemon=True).start()

    @mainthread
    def _on_workflow_state(self, state, status_text):
        self.status_text = status_text


def main():
    LocatorApp().run()


if __name__ == "__main__":
    main()
