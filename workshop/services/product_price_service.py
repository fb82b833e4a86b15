import logging
from typing import Dict, Any, Optional

from django.core.cache import cache
from django.db import transaction, IntegrityError
from django.db.models import Q

from stock.services.base_service import (
    BaseService, success_response,
    ValidationError, NotFoundError, ConflictError,
    parse_decimal, parse_bool,
)
from ..models import ProductPrice

logger = logging.getLogger(__name__)


class ProductPriceService(BaseService):
    model = ProductPrice

    CACHE_PREFIX = 'product_prices'
    CACHE_VERSION_KEY = 'product_prices:version'
    CACHE_TIMEOUT = 60 * 15

    UPDATABLE_FIELDS = ['product_name', 'product_type', 'brand', 'price', 'unit', 'is_active']

    # ==================== CACHE ====================

    @classmethod
    def _cache_key(cls, product_type, search, is_active) -> str:
        version = cache.get_or_set(cls.CACHE_VERSION_KEY, 1, None)
        return f"{cls.CACHE_PREFIX}:v{version}:{product_type or '*'}:{(search or '').lower()}:{is_active}"

    @classmethod
    def invalidate_cache(cls):
        try:
            cache.incr(cls.CACHE_VERSION_KEY)
        except ValueError:
            cache.set(cls.CACHE_VERSION_KEY, 1, None)

    # ==================== SERIALIZATION ====================

    @classmethod
    def serialize(cls, product: ProductPrice) -> Dict[str, Any]:
        return {
            'id': product.id,
            'product_name': product.product_name,
            'product_type': product.product_type,
            'brand': product.brand,
            'price': str(product.price),
            'unit': product.unit,
            'is_active': product.is_active,
            'created_at': product.created_at.isoformat(),
            'updated_at': product.updated_at.isoformat(),
        }

    @classmethod
    def get_or_404(cls, product_id) -> ProductPrice:
        product = cls.get_by_id(product_id)
        if not product:
            raise NotFoundError('Product price', product_id)
        return product

    # ==================== LIST & GET ====================

    @classmethod
    def list(cls, product_type: str = None, search: str = None,
             is_active: Optional[bool] = True) -> Dict[str, Any]:
        """Catalog listing, cached until the next write."""
        key = cls._cache_key(product_type, search, is_active)
        products = cache.get(key)

        if products is None:
            queryset = ProductPrice.objects.all()

            if product_type:
                queryset = queryset.filter(product_type=product_type)
            if search:
                queryset = queryset.filter(Q(product_name__icontains=search) | Q(brand__icontains=search))
            if is_active is not None:
                queryset = queryset.filter(is_active=is_active)

            products = [cls.serialize(p) for p in queryset.order_by('product_type', 'product_name')]
            cache.set(key, products, cls.CACHE_TIMEOUT)

        return success_response({'products': products, 'count': len(products)})

    @classmethod
    def get(cls, product_id) -> Dict[str, Any]:
        return success_response({'product': cls.serialize(cls.get_or_404(product_id))})

    # ==================== CREATE / UPDATE / DELETE ====================

    @classmethod
    def _validate_type(cls, product_type):
        if product_type not in ProductPrice.ProductType.values:
            raise ValidationError(
                f'Invalid product type. Valid: {ProductPrice.ProductType.values}', 'product_type'
            )

    @classmethod
    def _validate_price(cls, price):
        price = parse_decimal(price, 'price')
        if price < 0:
            raise ValidationError('Price cannot be negative', 'price')
        return price

    @classmethod
    def create(cls, product_name: str, product_type: str, price: Any,
               brand: str = '', unit: str = None, is_active: Any = True) -> Dict[str, Any]:
        product_name = (product_name or '').strip()
        if not product_name:
            raise ValidationError('Product name is required', 'product_name')

        cls._validate_type(product_type)
        price = cls._validate_price(price)
        brand = (brand or '').strip()

        if ProductPrice.objects.filter(
            product_name__iexact=product_name, product_type=product_type, brand__iexact=brand
        ).exists():
            raise ConflictError('Product with same name, type and brand already exists', 'product_name')

        try:
            with transaction.atomic():
                product = ProductPrice.objects.create(
                    product_name=product_name,
                    product_type=product_type,
                    brand=brand,
                    price=price,
                    unit=(unit or '').strip() or 'per piece',
                    is_active=parse_bool(is_active, default=True),
                )
        except IntegrityError:
            raise ConflictError('Product with same name, type and brand already exists', 'product_name')

        cls.invalidate_cache()
        logger.info("Product price created: %s (%s) = %s", product.product_name, product.product_type, product.price)

        return success_response({'product': cls.serialize(product)}, 'Product price created')

    @classmethod
    def update(cls, product_id, **kwargs) -> Dict[str, Any]:
        product = cls.get_or_404(product_id)

        if kwargs.get('product_name') is not None:
            name = str(kwargs['product_name']).strip()
            if not name:
                raise ValidationError('Product name is required', 'product_name')
            product.product_name = name
        if kwargs.get('product_type') is not None:
            cls._validate_type(kwargs['product_type'])
            product.product_type = kwargs['product_type']
        if kwargs.get('brand') is not None:
            product.brand = str(kwargs['brand']).strip()
        if kwargs.get('price') is not None:
            product.price = cls._validate_price(kwargs['price'])
        if kwargs.get('unit') is not None:
            product.unit = str(kwargs['unit']).strip() or 'per piece'
        if kwargs.get('is_active') is not None:
            product.is_active = parse_bool(kwargs['is_active'])

        duplicate = ProductPrice.objects.filter(
            product_name__iexact=product.product_name,
            product_type=product.product_type,
            brand__iexact=product.brand,
        ).exclude(id=product.id)
        if duplicate.exists():
            raise ConflictError('Product with same name, type and brand already exists', 'product_name')

        try:
            with transaction.atomic():
                product.save()
        except IntegrityError:
            raise ConflictError('Product with same name, type and brand already exists', 'product_name')

        cls.invalidate_cache()

        return success_response({'product': cls.serialize(product)}, 'Product price updated')

    @classmethod
    def delete(cls, product_id) -> Dict[str, Any]:
        product = cls.get_or_404(product_id)
        product.delete()

        cls.invalidate_cache()
        logger.info("Product price %s deleted", product_id)

        return success_response(message='Product price deleted')
