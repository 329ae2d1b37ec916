import os

from locator.receiver import create_app


app = create_app(os.environ.get('LOCATOR_ENV', 'production'))


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', '5055')))
