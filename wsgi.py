"""
WSGI entry point for production deployment
This file is used by Gunicorn and other WSGI servers
"""
from foodshare import create_app
import os

app = create_app('production')

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
