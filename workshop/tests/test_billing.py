from decimal import Decimal
from unittest import mock

from django.db.models import Sum
from django.test import TestCase, override_settings

from stock.models import StockBatch, StockConsumption
from stock.services.base_service import ValidationError, NotFoundError, BusinessRuleError
from workshop.models import ServiceRecord, Staff
from stock.services.batch_service import StockBatchService
from workshop.services.billing_service import BillingService
from workshop.tests.factories import make_staff, make_customer, make_batch


class RecordVisitTests(TestCase):

    def setUp(self):
        self.admin = make_staff(Staff.Role.ADMIN)
        self.customer = make_customer()
        self.oil = make_batch(quantity_in='20', batch_no='OIL-001')

    def record(self, **overrides):
        data = {
            'created_by': self.admin,
            'customer_id': self.customer.id,
            'service_date': '2026-03-01',
            'service_types': ['oil_change', 'washing'],
            'labour_charge': '600',
            'parts_charge': '900',
            'amount_paid': '1500',
            'products_used': [],
        }
        data.update(overrides)
        return BillingService.record_visit(**data)

    def test_visit_without_products(self):
        result = self.record()

        service = ServiceRecord.objects.get(id=result['service']['id'])
        self.assertEqual(service.amount_paid, Decimal('1500'))
        self.assertEqual(service.service_types, ['oil_change', 'washing'])
        self.assertEqual(result['product_errors'], [])
        self.assertEqual(result['service']['customer']['name'], self.customer.name)
        self.assertEqual(result['service']['created_by']['name'], self.admin.name)

    def test_failing_pair_does_not_block_others(self):
        result = self.record(products_used=[
            {'stock_id': self.oil.id, 'quantity_used': 2},
            {'stock_id': 999999, 'quantity_used': 1},
        ])

        self.assertTrue(ServiceRecord.objects.filter(id=result['service']['id']).exists())

        self.oil.refresh_from_db()
        self.assertEqual(self.oil.quantity_used, Decimal('2'))

        self.assertEqual(len(result['product_errors']), 1)
        error = result['product_errors'][0]
        self.assertEqual(error['index'], 1)
        self.assertEqual(error['stock_id'], 999999)

        self.assertEqual(StockConsumption.objects.count(), 1)
        self.assertEqual(len(result['service']['products_used']), 1)

    def test_invalid_quantity_is_reported_without_side_effects(self):
        result = self.record(products_used=[
            {'stock_id': self.oil.id, 'quantity_used': 0},
            {'stock_id': self.oil.id},
            'garbage',
        ])

        self.assertEqual([e['index'] for e in result['product_errors']], [0, 1, 2])
        self.oil.refresh_from_db()
        self.assertEqual(self.oil.quantity_used, Decimal('0'))
        self.assertFalse(StockConsumption.objects.exists())

    def test_consumption_records_sum_to_quantity_used(self):
        filter_batch = make_batch(quantity_in='10', batch_no='FLT-001', product_name='Oil Filter')

        self.record(products_used=[
            {'stock_id': self.oil.id, 'quantity_used': '3.5'},
            {'stock_id': filter_batch.id, 'quantity_used': 1},
        ])
        self.record(products_used=[
            {'stock_id': self.oil.id, 'quantity_used': 4},
            {'stock_id': 'bogus', 'quantity_used': 4},
        ])

        for batch in StockBatch.objects.all():
            with self.subTest(batch=batch.batch_no):
                total = batch.consumptions.aggregate(total=Sum('quantity_used'))['total'] or Decimal('0')
                self.assertEqual(total, batch.quantity_used)

    def test_over_consumption_goes_negative(self):
        self.record(products_used=[{'stock_id': self.oil.id, 'quantity_used': 25}])

        self.oil.refresh_from_db()
        self.assertEqual(self.oil.remaining_quantity, Decimal('-5'))

    @override_settings(ALLOW_NEGATIVE_STOCK=False)
    def test_insufficient_stock_is_a_product_error(self):
        result = self.record(products_used=[{'stock_id': self.oil.id, 'quantity_used': 25}])

        self.assertEqual(len(result['product_errors']), 1)
        self.assertIn('Insufficient stock', result['product_errors'][0]['error'])
        self.assertFalse(StockConsumption.objects.exists())

    def test_amount_paid_is_trusted(self):
        result = self.record(amount_paid='1234.50')
        self.assertEqual(result['service']['amount_paid'], '1234.50')

    def test_zero_amount_paid_is_valid(self):
        result = self.record(amount_paid=0, labour_charge=0, parts_charge=0)
        self.assertEqual(result['service']['amount_paid'], '0')

    def test_missing_required_fields(self):
        for field, value in (('customer_id', None), ('service_date', ''), ('service_types', []),
                             ('amount_paid', None)):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError) as ctx:
                    self.record(**{field: value})
                self.assertIn(field, ctx.exception.message)

        self.assertFalse(ServiceRecord.objects.exists())

    def test_unknown_service_type(self):
        with self.assertRaises(ValidationError):
            self.record(service_types=['teleportation'])

    def test_unknown_customer(self):
        with self.assertRaises(NotFoundError):
            self.record(customer_id=424242)

    @override_settings(BILLING_ATOMIC_VISITS=True)
    def test_atomic_mode_rolls_back_the_whole_visit(self):
        with self.assertRaises(BusinessRuleError) as ctx:
            self.record(products_used=[
                {'stock_id': self.oil.id, 'quantity_used': 2},
                {'stock_id': 999999, 'quantity_used': 1},
            ])

        self.assertEqual(len(ctx.exception.details['product_errors']), 1)
        self.assertFalse(ServiceRecord.objects.exists())
        self.assertFalse(StockConsumption.objects.exists())
        self.oil.refresh_from_db()
        self.assertEqual(self.oil.quantity_used, Decimal('0'))

    @override_settings(BILLING_ATOMIC_VISITS=True)
    def test_atomic_mode_stops_at_first_failing_pair(self):
        with mock.patch.object(StockBatchService, 'consume', wraps=StockBatchService.consume) as consume:
            with self.assertRaises(BusinessRuleError) as ctx:
                self.record(products_used=[
                    {'stock_id': 999999, 'quantity_used': 1},
                    {'stock_id': self.oil.id, 'quantity_used': 2},
                    {'stock_id': 888888, 'quantity_used': 1},
                ])

        self.assertEqual(consume.call_count, 1)
        self.assertEqual([e['index'] for e in ctx.exception.details['product_errors']], [0])

    def test_sub_paise_quantity_is_rejected(self):
        result = self.record(products_used=[{'stock_id': self.oil.id, 'quantity_used': '0.005'}])

        self.assertEqual(len(result['product_errors']), 1)
        self.assertIn('2 decimal places', result['product_errors'][0]['error'])
        self.oil.refresh_from_db()
        self.assertEqual(self.oil.quantity_used, Decimal('0'))
        self.assertFalse(StockConsumption.objects.exists())

    def test_repeated_small_quantities_keep_rows_and_batch_in_step(self):
        for _ in range(3):
            self.record(products_used=[{'stock_id': self.oil.id, 'quantity_used': '0.01'}])

        self.oil.refresh_from_db()
        total = self.oil.consumptions.aggregate(total=Sum('quantity_used'))['total']
        self.assertEqual(total, self.oil.quantity_used)
        self.assertEqual(self.oil.quantity_used, Decimal('0.03'))
