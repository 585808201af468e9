"""
Django settings for the consent gate project.
"""
import os
import logging

from pathlib import Path
from datetime import timedelta

from dotenv import load_dotenv
load_dotenv()

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent

# Security: SECRET_KEY from environment variable
SECRET_KEY = os.environ.get('SECRET_KEY')
if not SECRET_KEY:
    raise ValueError("SECRET_KEY environment variable must be set. Generate one with: openssl rand -hex 32")

# Security: DEBUG from environment variable (defaults to False for production safety)
DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'

# Django cache configuration
# In development: Uses local memory cache if Redis is not available
# In production: Uses Redis (must be available)
REDIS_URL = os.environ.get("REDIS_URL", "redis://127.0.0.1:6379/1")

# Check if Redis is available (only in development)
USE_REDIS = True
if DEBUG:
    try:
        import redis
        r = redis.from_url(REDIS_URL, socket_connect_timeout=1)
        r.ping()
        USE_REDIS = True
    except Exception as e:
        USE_REDIS = False
        logger.warning(f"Redis not available ({type(e).__name__}), using local memory cache for development")

if DEBUG and not USE_REDIS:
    # Development: Use local memory cache when Redis is not available
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "consentgate-cache",
            "KEY_PREFIX": "consentgate",
            "TIMEOUT": 300,
        }
    }
else:
    # Production or Development with Redis: Use Redis
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": REDIS_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "IGNORE_EXCEPTIONS": True,  # Graceful degradation - don't fail if Redis is temporarily unavailable
                "SOCKET_CONNECT_TIMEOUT": 5,
                "SOCKET_TIMEOUT": 5,
                "CONNECTION_POOL_KWARGS": {
                    "retry_on_timeout": True,
                    "health_check_interval": 30,
                },
            },
            "KEY_PREFIX": "consentgate",
            "TIMEOUT": 300,
        }
    }
    if not DEBUG:
        # Production: Add compression
        CACHES["default"]["OPTIONS"]["COMPRESSOR"] = "django_redis.compressors.zlib.ZlibCompressor"

ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get('ALLOWED_HOSTS', '127.0.0.1,localhost').split(',')
    if host.strip()
]

# ─────────────────────────────────────────
# Security Headers & Settings
# ─────────────────────────────────────────
SECURE_BROWSER_XSS_FILTER = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'SAMEORIGIN'

if not DEBUG:
    SECURE_HSTS_SECONDS = 31536000  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True

SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = True

# ─────────────────────────────────────────
# App registry
# ─────────────────────────────────────────
DJANGO_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
]

THIRD_PARTY_APPS = [
    'rest_framework',
    'drf_spectacular',
    'corsheaders',
    'rest_framework_simplejwt',
]

PLATFORM_APPS = [
    'app.core',                      # shared base models + admin audit log
    'app.platform.gating',           # consent-gated script loading
    'app.platform.consent',          # consent audit pipeline
]

INSTALLED_APPS = (
    DJANGO_APPS
    + THIRD_PARTY_APPS
    + PLATFORM_APPS
)


MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',  # Must be at top
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'app.platform.gating.middleware.ConsentScriptsMiddleware',
]

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('CORS_ALLOWED_ORIGINS', 'http://localhost:3000').split(',')
    if origin.strip()
]
CORS_ALLOW_ALL_ORIGINS = False
# The consent endpoint is anonymous; no cookies are needed cross-origin
CORS_ALLOW_CREDENTIALS = False


ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
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

WSGI_APPLICATION = 'config.wsgi.application'

# Security: Database credentials from environment variables
DB_ENGINE = os.environ.get('DB_ENGINE', 'postgresql')
if DB_ENGINE == 'sqlite':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.environ.get('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ.get('DB_NAME', 'consentgate'),
            'USER': os.environ.get('DB_USER', 'consentgate'),
            'PASSWORD': os.environ.get('DB_PASSWORD'),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
            'OPTIONS': {
                'connect_timeout': 10,
            },
            'CONN_MAX_AGE': 600,  # Reuse connections for 10 minutes
        }
    }

    # Validate critical database credentials in production
    if not DEBUG and not os.environ.get('DB_PASSWORD'):
        raise ValueError("DB_PASSWORD environment variable must be set in production")

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {
            'min_length': 8,
        }
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'static')

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'EXCEPTION_HANDLER': 'app.utils.exception_handler.custom_exception_handler',
    # Basic abuse protection for the anonymous consent endpoint
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle',
    ],
    'DEFAULT_THROTTLE_RATES': {
        'anon': os.environ.get('ANON_THROTTLE_RATE', '100/hour'),
        'user': '1000/hour',
    },
}


SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(hours=1),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Consent Gate API",
    "DESCRIPTION": "Cookie consent audit logging and review",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": True,
    "COMPONENT_SPLIT_REQUEST": True,
    "SECURITY_SCHEMES": {
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    },
}

# ─────────────────────────────────────────
# Logging
# ─────────────────────────────────────────
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG' if DEBUG else 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'app': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}

# ─────────────────────────────────────────
# Consent banner (operator configuration)
# ─────────────────────────────────────────
CONSENT_BANNER = {
    'ga4_id': os.getenv('CONSENT_GA4_ID', ''),
    'meta_pixel_id': os.getenv('CONSENT_META_PIXEL_ID', ''),
    'clarity_id': os.getenv('CONSENT_CLARITY_ID', ''),
    'gtm_id': os.getenv('CONSENT_GTM_ID', ''),
    'version': os.getenv('CONSENT_VERSION', '1.0'),
    'language': os.getenv('CONSENT_LANGUAGE', 'en'),
    'ui_layout': os.getenv('CONSENT_UI_LAYOUT', 'box'),
    'ui_position': os.getenv('CONSENT_UI_POSITION', 'bottom-right'),
    'ui_transition': os.getenv('CONSENT_UI_TRANSITION', 'slide'),
    'force_consent': os.getenv('CONSENT_FORCE', 'False').lower() == 'true',
    'hide_from_bots': os.getenv('CONSENT_HIDE_FROM_BOTS', 'True').lower() == 'true',
    'cookie_expiration': os.getenv('CONSENT_COOKIE_EXPIRATION_DAYS', 182),
    'retention_months': os.getenv('CONSENT_RETENTION_MONTHS', 12),
    'cookies_to_erase': os.getenv('CONSENT_COOKIES_TO_ERASE', '_ga,_gid,_gat,_gcl_,__utm,_fbp,fr,_uet,_ttp,_pin_'),
}
