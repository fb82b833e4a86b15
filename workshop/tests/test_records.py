from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase

from stock.services.base_service import ValidationError, ConflictError, NotFoundError
from workshop.models import Customer, ProductPrice
from workshop.services.customer_service import CustomerService
from workshop.services.product_price_service import ProductPriceService
from workshop.services.service_record_service import ServiceRecordService
from workshop.tests.factories import make_staff, make_customer, make_service


class ServiceRecordTests(TestCase):

    def setUp(self):
        self.owner = make_staff()
        self.customer = make_customer()

    def test_update_feedback_and_complaint(self):
        service = make_service(self.customer, self.owner)

        result = ServiceRecordService.update(
            service.id,
            feedback_text='Quick and clean',
            feedback_rating=5,
            complaint_flag=True,
            complaint_description='Scratch on bumper',
        )

        service.refresh_from_db()
        self.assertEqual(service.feedback_rating, 5)
        self.assertTrue(service.complaint_flag)
        self.assertEqual(result['service']['complaint_description'], 'Scratch on bumper')

    def test_rating_out_of_range(self):
        service = make_service(self.customer, self.owner)

        for rating in (0, 6, '4.5', 'great'):
            with self.subTest(rating=rating):
                with self.assertRaises(ValidationError):
                    ServiceRecordService.update(service.id, feedback_rating=rating)

        service.refresh_from_db()
        self.assertIsNone(service.feedback_rating)

    def test_amount_correction(self):
        service = make_service(self.customer, self.owner)
        ServiceRecordService.update(service.id, amount_paid='999.99')
        service.refresh_from_db()
        self.assertEqual(service.amount_paid, Decimal('999.99'))

    def test_list_filters(self):
        other = make_customer(mobile='9111111111', name='Meena')
        washed = make_service(self.customer, self.owner, service_types=['washing'], service_date=date(2026, 1, 10))
        repaired = make_service(other, self.owner, service_types=['repair', 'ac_work'], service_date=date(2026, 2, 10))

        by_type = ServiceRecordService.list(service_type='ac_work')
        self.assertEqual([s['id'] for s in by_type['services']], [repaired.id])

        by_customer = ServiceRecordService.list(customer_id=self.customer.id)
        self.assertEqual([s['id'] for s in by_customer['services']], [washed.id])

        by_date = ServiceRecordService.list(start_date='2026-02-01', end_date='2026-02-28')
        self.assertEqual([s['id'] for s in by_date['services']], [repaired.id])

    def test_get_unknown(self):
        with self.assertRaises(NotFoundError):
            ServiceRecordService.get(31337)


class CustomerTests(TestCase):

    def test_create_and_duplicate_mobile(self):
        result = CustomerService.create('Ravi', '9876543210', 'ka01ab1234')
        self.assertEqual(result['user']['vehicle_no'], 'KA01AB1234')

        with self.assertRaises(ConflictError):
            CustomerService.create('Someone Else', '9876543210', 'KA02XY0001')

        self.assertEqual(Customer.objects.count(), 1)

    def test_required_fields(self):
        with self.assertRaises(ValidationError):
            CustomerService.create('Ravi', '', 'KA01AB1234')

    def test_search_and_detail(self):
        owner = make_staff()
        ravi = make_customer(name='Ravi', mobile='9000000001', vehicle_no='KA01AA0001')
        make_customer(name='Meena', mobile='9000000002', vehicle_no='TN09BB0002')
        make_service(ravi, owner)

        result = CustomerService.list(search='TN09')
        self.assertEqual([u['name'] for u in result['users']], ['Meena'])

        detail = CustomerService.get(ravi.id)
        self.assertEqual(len(detail['user']['services']), 1)


class ProductPriceTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_duplicate_name_type_brand(self):
        ProductPriceService.create('Engine Oil 5W-30', 'oil', '450', brand='Castrol')

        with self.assertRaises(ConflictError):
            ProductPriceService.create('engine oil 5w-30', 'oil', '470', brand='castrol')

        ProductPriceService.create('Engine Oil 5W-30', 'oil', '430', brand='Shell')
        self.assertEqual(ProductPrice.objects.count(), 2)

    def test_invalid_type(self):
        with self.assertRaises(ValidationError):
            ProductPriceService.create('Spoiler', 'body_kit', '1000')

    def test_listing_cache_is_invalidated_on_write(self):
        ProductPriceService.create('Tyre 185/65 R15', 'tyre', '4200', brand='MRF')
        self.assertEqual(ProductPriceService.list()['count'], 1)

        ProductPriceService.create('Battery 35Ah', 'battery', '3800', brand='Exide')
        self.assertEqual(ProductPriceService.list()['count'], 2)

        product = ProductPrice.objects.get(product_name='Battery 35Ah')
        ProductPriceService.update(product.id, is_active=False)
        self.assertEqual(ProductPriceService.list()['count'], 1)
        self.assertEqual(ProductPriceService.list(is_active=None)['count'], 2)

        ProductPriceService.delete(product.id)
        self.assertEqual(ProductPriceService.list(is_active=None)['count'], 1)

    def test_default_unit(self):
        result = ProductPriceService.create('Brake Pad Set', 'brake_pad', '1500')
        self.assertEqual(result['product']['unit'], 'per piece')
