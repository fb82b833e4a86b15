from decimal import Decimal

from django.db.models import Sum
from django.test import TestCase, override_settings

from stock.models import StockBatch, StockConsumption
from stock.services import (
    StockBatchService, NotFoundError, ValidationError, InsufficientStockError, BusinessRuleError,
)
from workshop.models import Staff
from workshop.tests.factories import make_batch, make_customer, make_service, make_staff


class ConsumeTests(TestCase):

    def setUp(self):
        self.batch = make_batch(quantity_in='20', threshold='10')

    def test_consume_increments_used(self):
        result = StockBatchService.consume(self.batch.id, 3)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_used, Decimal('3'))
        self.assertEqual(self.batch.remaining_quantity, Decimal('17'))
        self.assertEqual(result['remaining'], '17.00')
        self.assertEqual(result['consumed'], '3.00')
        self.assertFalse(result['is_low_stock'])

    def test_low_stock_at_threshold(self):
        StockBatchService.consume(self.batch.id, 9)
        self.batch.refresh_from_db()
        self.assertFalse(self.batch.is_low_stock)

        result = StockBatchService.consume(self.batch.id, 1)
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.remaining_quantity, Decimal('10'))
        self.assertTrue(self.batch.is_low_stock)
        self.assertTrue(result['is_low_stock'])

    def test_unknown_batch(self):
        with self.assertRaises(NotFoundError):
            StockBatchService.consume(999999, 1)

    def test_invalid_batch_reference(self):
        with self.assertRaises(ValidationError):
            StockBatchService.consume('not-an-id', 1)

    def test_quantity_must_be_positive(self):
        for quantity in (0, -1, '0'):
            with self.subTest(quantity=quantity):
                with self.assertRaises(ValidationError):
                    StockBatchService.consume(self.batch.id, quantity)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_used, Decimal('0'))

    def test_quantity_with_more_than_two_places_is_rejected(self):
        with self.assertRaises(ValidationError):
            StockBatchService.consume(self.batch.id, '0.005')

        StockBatchService.consume(self.batch.id, '1.500')
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_used, Decimal('1.5'))

    def test_over_consumption_allowed_by_default(self):
        StockBatchService.consume(self.batch.id, 25)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.remaining_quantity, Decimal('-5'))

    @override_settings(ALLOW_NEGATIVE_STOCK=False)
    def test_over_consumption_rejected_when_negative_stock_disallowed(self):
        StockBatchService.consume(self.batch.id, 15)

        with self.assertRaises(InsufficientStockError):
            StockBatchService.consume(self.batch.id, 6)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_used, Decimal('15'))

        StockBatchService.consume(self.batch.id, 5)
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.remaining_quantity, Decimal('0'))

    def test_defective_flag_is_independent(self):
        StockBatchService.update(self.batch.id, is_defective=True)
        StockBatchService.consume(self.batch.id, 2)

        self.batch.refresh_from_db()
        self.assertTrue(self.batch.is_defective)
        self.assertEqual(self.batch.quantity_used, Decimal('2'))


class BatchCrudTests(TestCase):

    def test_create_requires_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            StockBatchService.create(
                product_name='Brake Pad', batch_no='', quantity_in=None, unit_price='100', supplier='Bosch'
            )
        self.assertEqual(ctx.exception.details['missing'], ['batch_no', 'quantity_in'])

    def test_create_rejects_non_positive_quantity(self):
        with self.assertRaises(ValidationError):
            StockBatchService.create(
                product_name='Brake Pad', batch_no='BP-1', quantity_in='0', unit_price='100', supplier='Bosch'
            )

    def test_create_uses_default_threshold(self):
        result = StockBatchService.create(
            product_name='Brake Pad', batch_no='BP-1', quantity_in='8', unit_price='100', supplier='Bosch'
        )
        batch = StockBatch.objects.get(id=result['id'])

        self.assertEqual(batch.low_stock_threshold, Decimal('10'))
        self.assertEqual(batch.quantity_used, Decimal('0'))
        self.assertTrue(result['stock']['is_low_stock'])
        self.assertEqual(result['stock']['quantity_in'], '8.00')
        self.assertEqual(StockBatchService.get(batch.id)['stock']['quantity_in'], '8.00')

    def test_list_low_stock_filter(self):
        make_batch(batch_no='A', quantity_in='50')
        low = make_batch(batch_no='B', quantity_in='5')

        result = StockBatchService.list(low_stock=True)

        self.assertEqual([s['id'] for s in result['stocks']], [low.id])
        self.assertEqual(result['pagination']['total_items'], 1)

    def test_update_can_correct_quantity_in(self):
        batch = make_batch(quantity_in='20')

        StockBatchService.update(batch.id, quantity_in='30', notes='recount')

        batch.refresh_from_db()
        self.assertEqual(batch.quantity_in, Decimal('30'))
        self.assertEqual(batch.notes, 'recount')

    def test_delete_unused_batch(self):
        batch = make_batch()
        StockBatchService.delete(batch.id)
        self.assertFalse(StockBatch.objects.filter(id=batch.id).exists())

    def test_delete_batch_with_consumptions_is_refused(self):
        batch = make_batch()
        owner = make_staff(Staff.Role.OWNER)
        service = make_service(make_customer(), owner)
        StockConsumption.objects.create(service=service, batch=batch, quantity_used=Decimal('1'))

        with self.assertRaises(BusinessRuleError):
            StockBatchService.delete(batch.id)

    def test_service_delete_cascades_to_consumptions(self):
        batch = make_batch()
        service = make_service(make_customer(), make_staff())
        StockConsumption.objects.create(service=service, batch=batch, quantity_used=Decimal('2'))

        service.delete()

        self.assertEqual(StockConsumption.objects.filter(batch=batch).aggregate(t=Sum('quantity_used'))['t'], None)
        self.assertTrue(StockBatch.objects.filter(id=batch.id).exists())
