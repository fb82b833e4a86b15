import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional, Iterable

import jwt
from django.conf import settings
from django.contrib.auth.hashers import make_password, check_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import transaction, IntegrityError

from stock.services.base_service import (
    ValidationError, ConflictError, AuthenticationError, PermissionDeniedError, success_response,
)
from ..models import Staff

logger = logging.getLogger(__name__)


class AuthService:
    JWT_SECRET = getattr(settings, 'JWT_SECRET_KEY', settings.SECRET_KEY)
    JWT_ALGORITHM = getattr(settings, 'JWT_ALGORITHM', 'HS256')
    JWT_EXPIRY_DAYS = getattr(settings, 'JWT_EXPIRY_DAYS', 7)
    COOKIE_NAME = getattr(settings, 'JWT_COOKIE_NAME', 'token')

    MIN_PASSWORD_LENGTH = 6

    @classmethod
    def serialize_staff(cls, staff: Staff) -> dict:
        return {
            'id': staff.id,
            'name': staff.name,
            'email': staff.email,
            'role': staff.role,
            'mobile': staff.mobile,
            'is_active': staff.is_active,
        }

    # ==================== FIRST-RUN SETUP ====================

    @classmethod
    def admin_exists(cls) -> bool:
        return Staff.objects.exists()

    @classmethod
    @transaction.atomic
    def setup_owner(cls, name, email, password, mobile=None):
        """Create the first owner account. Only allowed while no staff exists."""
        if cls.admin_exists():
            raise ConflictError('Admin user already exists. Please login or contact system administrator.')

        if not email or not password or not name:
            raise ValidationError('Email, password, and name are required')

        staff = cls._create_staff(
            name=name,
            email=email,
            password=password,
            role=Staff.Role.OWNER,
            mobile=mobile or '',
        )
        logger.info("Owner account created: %s", staff.email)
        return success_response({'user': cls.serialize_staff(staff)},
                                'Admin user created successfully. Please login now.')

    # ==================== STAFF ====================

    @classmethod
    @transaction.atomic
    def register(cls, name, email, password, role, mobile):
        missing = [f for f, v in (('name', name), ('email', email), ('password', password),
                                  ('role', role), ('mobile', mobile)) if not v]
        if missing:
            raise ValidationError('All fields are required', missing[0], {'missing': missing})

        if role not in Staff.Role.values:
            raise ValidationError(f'Invalid role. Valid: {Staff.Role.values}', 'role')

        staff = cls._create_staff(name=name, email=email, password=password, role=role, mobile=mobile)
        logger.info("Staff registered: %s (%s)", staff.email, staff.role)
        return success_response({'staff': cls.serialize_staff(staff)}, 'Staff registered successfully')

    @classmethod
    def _create_staff(cls, name, email, password, role, mobile):
        email = email.lower().strip()
        try:
            validate_email(email)
        except DjangoValidationError:
            raise ValidationError('Invalid email address', 'email')

        if len(password) < cls.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f'Password must be at least {cls.MIN_PASSWORD_LENGTH} characters', 'password'
            )

        if Staff.objects.filter(email=email).exists():
            raise ConflictError('Staff with this email already exists', 'email')

        try:
            with transaction.atomic():
                return Staff.objects.create(
                    name=name.strip(),
                    email=email,
                    password=make_password(password),
                    role=role,
                    mobile=mobile,
                    is_active=True,
                )
        except IntegrityError:
            raise ConflictError('Staff with this email already exists', 'email')

    # ==================== LOGIN ====================

    @classmethod
    def login(cls, email, password):
        if not email or not password:
            raise ValidationError('Email and password are required')

        staff = Staff.objects.filter(email=email.lower().strip(), is_active=True).first()

        if staff is None:
            if not cls.admin_exists():
                raise AuthenticationError(
                    'No admin user found. Please setup admin account first.',
                    {'setup_required': True},
                )
            raise AuthenticationError('Invalid email or password')

        if not check_password(password, staff.password):
            logger.info("Failed login for %s", staff.email)
            raise AuthenticationError('Invalid email or password')

        token = cls.generate_token(staff)
        return success_response({'user': cls.serialize_staff(staff), 'token': token}, 'Login successful')

    # ==================== TOKENS ====================

    @classmethod
    def generate_token(cls, staff: Staff) -> str:
        now = datetime.now(dt_timezone.utc)
        payload = {
            'user_id': staff.id,
            'email': staff.email,
            'role': staff.role,
            'exp': now + timedelta(days=cls.JWT_EXPIRY_DAYS),
            'iat': now,
        }
        return jwt.encode(payload, cls.JWT_SECRET, algorithm=cls.JWT_ALGORITHM)

    @classmethod
    def verify_token(cls, token: str) -> Optional[Staff]:
        try:
            payload = jwt.decode(token, cls.JWT_SECRET, algorithms=[cls.JWT_ALGORITHM])
        except jwt.InvalidTokenError:
            return None

        return Staff.objects.filter(id=payload.get('user_id'), is_active=True).first()

    @classmethod
    def get_token_from_request(cls, request) -> Optional[str]:
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')
        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None
        return request.COOKIES.get(cls.COOKIE_NAME) or None

    @classmethod
    def get_staff_from_request(cls, request) -> Optional[Staff]:
        token = cls.get_token_from_request(request)
        if not token:
            return None
        return cls.verify_token(token)

    # ==================== ROLES ====================

    @classmethod
    def require_role(cls, staff: Optional[Staff], roles: Iterable[str]) -> Staff:
        roles = list(roles)
        if staff is None:
            raise AuthenticationError()
        if staff.role not in roles:
            raise PermissionDeniedError(required_roles=roles)
        return staff
