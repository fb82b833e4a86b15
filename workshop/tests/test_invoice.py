import re
from decimal import Decimal
from unittest import mock

import requests
from django.test import TestCase, SimpleTestCase

from stock.services.base_service import ConflictError, NotFoundError, ValidationError
from workshop.models import Invoice
from workshop.services.invoice_service import InvoiceService
from workshop.services.notification_service import (
    WhatsAppConfig, WhatsAppService, format_message_template,
)
from workshop.tests.factories import make_staff, make_customer, make_service

INVOICE_NO = re.compile(r'^INV-\d{8}-\d{4}$')


class InvoiceCreateTests(TestCase):

    def setUp(self):
        self.owner = make_staff()
        self.customer = make_customer()
        self.service = make_service(self.customer, self.owner, labour='600', parts='400')

    def test_intrastate_invoice(self):
        result = InvoiceService.create(self.service.id)
        invoice = Invoice.objects.get(service=self.service)

        self.assertEqual(invoice.total_amount, Decimal('1000.00'))
        self.assertEqual(invoice.cgst, Decimal('90.00'))
        self.assertEqual(invoice.sgst, Decimal('90.00'))
        self.assertEqual(invoice.igst, Decimal('0.00'))
        self.assertEqual(invoice.gst_amount, Decimal('180.00'))
        self.assertEqual(invoice.final_amount, Decimal('1180.00'))
        self.assertRegex(result['invoice']['invoice_no'], INVOICE_NO)
        self.assertEqual(result['invoice']['service']['customer']['mobile'], self.customer.mobile)

    def test_discount_is_applied_before_tax(self):
        InvoiceService.create(self.service.id, discount_amount='100', is_interstate=True)
        invoice = Invoice.objects.get(service=self.service)

        self.assertEqual(invoice.igst, Decimal('162.00'))
        self.assertEqual(invoice.cgst, Decimal('0.00'))
        self.assertEqual(invoice.final_amount, Decimal('1062.00'))

    def test_amounts_are_rounded_to_paise(self):
        service = make_service(make_customer(mobile='9000011111'), self.owner, labour='0.10', parts='0')
        InvoiceService.create(service.id)
        invoice = Invoice.objects.get(service=service)

        self.assertEqual(invoice.cgst, Decimal('0.01'))
        self.assertEqual(invoice.final_amount, Decimal('0.12'))

    def test_stored_split_adds_up_to_gst_amount(self):
        service = make_service(make_customer(mobile='9000044444'), self.owner, labour='1000.25', parts='0')
        InvoiceService.create(service.id)
        invoice = Invoice.objects.get(service=service)

        self.assertEqual(invoice.gst_amount, Decimal('180.05'))
        self.assertEqual(invoice.cgst, Decimal('90.03'))
        self.assertEqual(invoice.sgst, Decimal('90.02'))
        self.assertEqual(invoice.cgst + invoice.sgst + invoice.igst, invoice.gst_amount)
        self.assertEqual(invoice.final_amount, invoice.total_amount - invoice.discount_amount + invoice.gst_amount)
        self.assertEqual(invoice.final_amount, Decimal('1180.30'))

    def test_stored_interstate_tax_is_all_igst(self):
        service = make_service(make_customer(mobile='9000055555'), self.owner, labour='1000.25', parts='0')
        InvoiceService.create(service.id, is_interstate=True)
        invoice = Invoice.objects.get(service=service)

        self.assertEqual(invoice.igst, invoice.gst_amount)
        self.assertEqual(invoice.cgst + invoice.sgst, Decimal('0'))

    def test_second_invoice_for_same_service_conflicts(self):
        InvoiceService.create(self.service.id)

        with self.assertRaises(ConflictError) as ctx:
            InvoiceService.create(self.service.id, discount_amount='50')

        self.assertEqual(ctx.exception.message, 'Invoice already exists for this service')
        self.assertEqual(Invoice.objects.filter(service=self.service).count(), 1)

    def test_numbers_follow_daily_sequence(self):
        other = make_service(make_customer(mobile='9000022222'), self.owner)

        first = InvoiceService.create(self.service.id)['invoice']['invoice_no']
        second = InvoiceService.create(other.id)['invoice']['invoice_no']

        self.assertTrue(first.endswith('-0001'))
        self.assertTrue(second.endswith('-0002'))
        self.assertEqual(first[:-5], second[:-5])

    def test_taken_number_is_skipped(self):
        other = make_service(make_customer(mobile='9000033333'), self.owner)
        first = InvoiceService.create(self.service.id)['invoice']['invoice_no']

        with mock.patch('workshop.services.invoice_service.generate_number') as generate:
            generate.side_effect = lambda prefix, model, field, offset=0: (
                first if offset == 0 else first[:-4] + '0099'
            )
            result = InvoiceService.create(other.id)

        self.assertTrue(result['invoice']['invoice_no'].endswith('-0099'))
        self.assertEqual(Invoice.objects.count(), 2)

    def test_missing_service(self):
        with self.assertRaises(NotFoundError):
            InvoiceService.create(987654)

    def test_negative_discount_rejected(self):
        with self.assertRaises(ValidationError):
            InvoiceService.create(self.service.id, discount_amount='-1')


class InvoiceSendTests(TestCase):

    def setUp(self):
        owner = make_staff()
        self.customer = make_customer(name='Asha', vehicle_no='MH12CD3456')
        service = make_service(self.customer, owner)
        self.invoice = Invoice.objects.get(id=InvoiceService.create(service.id)['invoice']['id'])

    def test_failed_delivery_leaves_invoice_unsent(self):
        notifier = mock.Mock()
        notifier.send_message.return_value = (False, 'No internet connection')

        result = InvoiceService.send(self.invoice.id, notifier=notifier)

        self.assertFalse(result['success'])
        self.assertEqual(result['error'], 'No internet connection')
        self.invoice.refresh_from_db()
        self.assertFalse(self.invoice.sent_on_whatsapp)
        self.assertIsNone(self.invoice.sent_at)

    def test_successful_delivery_marks_invoice_sent(self):
        notifier = mock.Mock()
        notifier.send_message.return_value = (True, None)

        result = InvoiceService.send(self.invoice.id, notifier=notifier)

        self.assertTrue(result['success'])
        self.invoice.refresh_from_db()
        self.assertTrue(self.invoice.sent_on_whatsapp)
        self.assertIsNotNone(self.invoice.sent_at)

        to, message = notifier.send_message.call_args[0]
        self.assertEqual(to, self.customer.mobile)
        self.assertIn('Dear Asha', message)
        self.assertIn(self.invoice.invoice_no, message)
        self.assertIn('MH12CD3456', message)
        self.assertIn('₹1180.00', message)

    @mock.patch('workshop.services.notification_service.requests.post')
    def test_http_failure_is_not_fatal(self, post):
        post.side_effect = requests.exceptions.ConnectionError()
        notifier = WhatsAppService(WhatsAppConfig(api_url='https://wa.example', api_key='key', max_retries=2))

        result = InvoiceService.send(self.invoice.id, notifier=notifier)

        self.assertFalse(result['success'])
        self.assertEqual(post.call_count, 2)
        self.invoice.refresh_from_db()
        self.assertFalse(self.invoice.sent_on_whatsapp)

    def test_unknown_invoice(self):
        with self.assertRaises(NotFoundError):
            InvoiceService.send(123456, notifier=mock.Mock())

    def test_mark_payment_received(self):
        InvoiceService.mark_payment_received(self.invoice.id)
        self.invoice.refresh_from_db()
        self.assertTrue(self.invoice.payment_received)
        self.assertIsNotNone(self.invoice.payment_date)

        InvoiceService.mark_payment_received(self.invoice.id, received=False)
        self.invoice.refresh_from_db()
        self.assertFalse(self.invoice.payment_received)
        self.assertIsNone(self.invoice.payment_date)


class WhatsAppServiceTests(SimpleTestCase):

    def test_unconfigured_service_simulates_delivery(self):
        service = WhatsAppService(WhatsAppConfig(api_url='https://wa.example', api_key=''))
        with mock.patch('workshop.services.notification_service.requests.post') as post:
            self.assertEqual(service.send_message('9876543210', 'hi'), (True, None))
        post.assert_not_called()

    @mock.patch('workshop.services.notification_service.requests.post')
    def test_posts_payload_with_bearer_key(self, post):
        post.return_value = mock.Mock(ok=True, status_code=200)
        service = WhatsAppService(WhatsAppConfig(api_url='https://wa.example/', api_key='secret'))

        self.assertEqual(service.send_message('9876543210', 'hello'), (True, None))

        args, kwargs = post.call_args
        self.assertEqual(args[0], 'https://wa.example/send')
        self.assertEqual(kwargs['json'], {'to': '9876543210', 'message': 'hello', 'type': 'text'})
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer secret')

    @mock.patch('workshop.services.notification_service.requests.post')
    def test_error_status_is_reported(self, post):
        post.return_value = mock.Mock(ok=False, status_code=503, text='down')
        service = WhatsAppService(WhatsAppConfig(api_url='https://wa.example', api_key='k', max_retries=1))

        sent, error = service.send_message('1', 'x')

        self.assertFalse(sent)
        self.assertIn('503', error)

    def test_format_message_template(self):
        text = format_message_template('Hi {{name}}, {{missing}}total {{amount}}', {'name': 'Ravi', 'amount': 0})
        self.assertEqual(text, 'Hi Ravi, total ')
