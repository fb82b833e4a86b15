import logging
from typing import Dict, Any

from django.db import transaction, IntegrityError
from django.db.models import Q, Count, Max

from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, ConflictError,
)
from ..models import Customer

logger = logging.getLogger(__name__)


class CustomerService(BaseService):
    model = Customer

    @classmethod
    def serialize(cls, customer: Customer) -> Dict[str, Any]:
        return {
            'id': customer.id,
            'name': customer.name,
            'mobile': customer.mobile,
            'vehicle_no': customer.vehicle_no,
            'email': customer.email,
            'source': customer.source,
            'created_at': customer.created_at.isoformat(),
        }

    @classmethod
    def get_or_404(cls, customer_id) -> Customer:
        customer = cls.get_by_id(customer_id)
        if not customer:
            raise NotFoundError('Customer', customer_id)
        return customer

    @classmethod
    def list(cls, search: str = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        queryset = Customer.objects.annotate(
            visit_count=Count('services'),
            last_visit=Max('services__service_date'),
        )

        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(mobile__icontains=search) |
                Q(vehicle_no__icontains=search)
            )

        customers, pagination = paginate_queryset(queryset.order_by('-created_at', '-id'), page, per_page)

        return success_response({
            'users': [
                {
                    **cls.serialize(c),
                    'visit_count': c.visit_count,
                    'last_visit': c.last_visit.isoformat() if c.last_visit else None,
                }
                for c in customers
            ],
            'pagination': pagination,
        })

    @classmethod
    def get(cls, customer_id) -> Dict[str, Any]:
        from .service_record_service import ServiceRecordService

        customer = cls.get_or_404(customer_id)
        services = customer.services.select_related('created_by').order_by('-service_date', '-id')

        return success_response({
            'user': {
                **cls.serialize(customer),
                'services': [ServiceRecordService.serialize(s, include_customer=False) for s in services],
            }
        })

    @classmethod
    @transaction.atomic
    def create(cls, name: str, mobile: str, vehicle_no: str, email: str = None,
               source: str = Customer.Source.ADMIN) -> Dict[str, Any]:
        name = (name or '').strip()
        mobile = (mobile or '').strip()
        vehicle_no = (vehicle_no or '').strip()

        if not name:
            raise ValidationError('Name is required', 'name')
        if not mobile:
            raise ValidationError('Mobile number is required', 'mobile')
        if not vehicle_no:
            raise ValidationError('Vehicle number is required', 'vehicle_no')

        if source not in Customer.Source.values:
            raise ValidationError(f'Invalid source. Valid: {Customer.Source.values}', 'source')

        if Customer.objects.filter(mobile=mobile).exists():
            raise ConflictError('Customer with this mobile number already exists', 'mobile')

        try:
            with transaction.atomic():
                customer = Customer.objects.create(
                    name=name,
                    mobile=mobile,
                    vehicle_no=vehicle_no.upper(),
                    email=(email or '').strip() or None,
                    source=source,
                )
        except IntegrityError:
            raise ConflictError('Customer with this mobile number already exists', 'mobile')

        logger.info("Customer created: %s (%s)", customer.name, customer.vehicle_no)

        return success_response({'user': cls.serialize(customer)}, 'Customer created')
