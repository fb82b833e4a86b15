"""
Base settings for service_center project.
Shared between local (workshop PC) and production deployments.
"""

from pathlib import Path
import os

from django.urls import reverse_lazy

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-q2v!x8n@k4c^7p0z$l3m#w9r&t6y_e1u+o5i=s2d-f8g*h4j')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')


# Application definition
INSTALLED_APPS = [
    "unfold",
    "unfold.contrib.filters",
    "unfold.contrib.forms",
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'workshop',
    'stock',
    'corsheaders',
    'rest_framework',
    'drf_spectacular',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'workshop.middleware.JSONOnlyMiddleware',
]

ROOT_URLCONF = 'service_center.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [
            BASE_DIR / 'templates',
        ],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'service_center.wsgi.application'


# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# Internationalization
LANGUAGE_CODE = 'en-in'
TIME_ZONE = 'Asia/Kolkata'
USE_I18N = True
USE_TZ = True


# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# CORS
CORS_ALLOW_ALL_ORIGINS = True


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# JWT Settings
JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)
JWT_ALGORITHM = 'HS256'
JWT_EXPIRY_DAYS = 7
JWT_COOKIE_NAME = 'token'


# =============================================================================
# BILLING
# =============================================================================
DEFAULT_GST_RATE = os.getenv('DEFAULT_GST_RATE', '18')
INVOICE_NUMBER_PREFIX = 'INV'
INVOICE_NUMBER_MAX_ATTEMPTS = 5

# Record a visit and all of its stock consumptions in one transaction.
# When off, consumption errors are collected and the visit is still kept.
BILLING_ATOMIC_VISITS = os.getenv('BILLING_ATOMIC_VISITS', 'False').lower() == 'true'


# =============================================================================
# STOCK
# =============================================================================
ALLOW_NEGATIVE_STOCK = os.getenv('ALLOW_NEGATIVE_STOCK', 'True').lower() == 'true'
DEFAULT_LOW_STOCK_THRESHOLD = 10


# =============================================================================
# WHATSAPP
# =============================================================================
WHATSAPP_API_URL = os.getenv('WHATSAPP_API_URL', 'https://api.whatsapp.com')
WHATSAPP_API_KEY = os.getenv('WHATSAPP_API_KEY', '')
WHATSAPP_TIMEOUT = int(os.getenv('WHATSAPP_TIMEOUT', '10'))
WHATSAPP_MAX_RETRIES = int(os.getenv('WHATSAPP_MAX_RETRIES', '3'))

INVOICE_MESSAGE_TEMPLATE = (
    "Dear {{name}},\n\n"
    "Your invoice {{invoice_no}} for vehicle {{vehicle_no}} has been generated.\n\n"
    "Total Amount: ₹{{final_amount}}\n\n"
    "Thank you for your service!"
)


# Unfold Admin Configuration
UNFOLD = {
    "SITE_TITLE": "Service Center Admin",
    "SITE_HEADER": "Service Center",
    "SITE_URL": "/",
    "SITE_SYMBOL": "car_repair",

    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": True,
        "navigation": [
            {
                "title": "Workshop",
                "separator": True,
                "items": [
                    {
                        "title": "Customers",
                        "icon": "people",
                        "link": reverse_lazy("admin:workshop_customer_changelist"),
                    },
                    {
                        "title": "Service Visits",
                        "icon": "build",
                        "link": reverse_lazy("admin:workshop_servicerecord_changelist"),
                    },
                    {
                        "title": "Invoices",
                        "icon": "receipt_long",
                        "link": reverse_lazy("admin:workshop_invoice_changelist"),
                    },
                    {
                        "title": "Product Prices",
                        "icon": "sell",
                        "link": reverse_lazy("admin:workshop_productprice_changelist"),
                    },
                ],
            },
            {
                "title": "Inventory",
                "separator": True,
                "items": [
                    {
                        "title": "Stock Batches",
                        "icon": "inventory_2",
                        "link": reverse_lazy("admin:stock_stockbatch_changelist"),
                    },
                ],
            },
            {
                "title": "Staff & Access",
                "separator": True,
                "items": [
                    {
                        "title": "Staff",
                        "icon": "badge",
                        "link": reverse_lazy("admin:workshop_staff_changelist"),
                    },
                ],
            },
        ],
    },
}

REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',

    'DEFAULT_AUTHENTICATION_CLASSES': [
        'workshop.authentication.JWTAuthentication',
    ],

    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
        'rest_framework.renderers.BrowsableAPIRenderer',
    ],

    'UNAUTHENTICATED_USER': None,
}


SPECTACULAR_SETTINGS = {
    'TITLE': 'Service Center',
    'DESCRIPTION': 'Service Center billing and inventory API documentation',
    'VERSION': '1.0.0',

    'SECURITY': [{'bearerAuth': []}],

    'COMPONENTS': {
        'securitySchemes': {
            'bearerAuth': {
                'type': 'http',
                'scheme': 'bearer',
                'bearerFormat': 'JWT',
            }
        }
    },
}
