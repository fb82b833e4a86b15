# service_center/settings/__init__.py

import os

settings_module = os.getenv('DJANGO_SETTINGS_MODULE', 'service_center.settings.local')

if 'production' in settings_module:
    from .production import *
elif 'test' in settings_module:
    from .test import *
else:
    from .local import *
