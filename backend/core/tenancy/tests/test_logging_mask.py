import logging

from django.test import SimpleTestCase

from tenancy.logging import MaskTaxIdFilter, mask_tax_ids


class MaskTaxIdTests(SimpleTestCase):
    def test_masks_formatted_values(self):
        msg = "cedula=001-1234567-8 rnc=1-01-12345-6"
        masked = mask_tax_ids(msg)
        self.assertNotIn("001-1234567-8", masked)
        self.assertNotIn("1-01-12345-6", masked)
        self.assertIn("***CEDULA***", masked)
        self.assertIn("***RNC***", masked)

    def test_bare_digits_in_messages_stay_readable(self):
        msg = "insurer_id=123456789 policy=00112345678"
        self.assertEqual(mask_tax_ids(msg), msg)

    def test_masks_bare_digits_in_tax_id_values(self):
        self.assertEqual(mask_tax_ids("00112345678", bare_digits=True), "***CEDULA***")
        self.assertEqual(mask_tax_ids("101123456", bare_digits=True), "***RNC***")

    def test_leaves_other_numbers_alone(self):
        self.assertEqual(mask_tax_ids("policy 12345 amount 1500.00"), "policy 12345 amount 1500.00")

    def test_logging_filter_masks_message(self):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="cedula=%s",
            args=("001-1234567-8",),
            exc_info=None,
        )
        MaskTaxIdFilter().filter(record)
        self.assertIn("***CEDULA***", record.msg)
        self.assertNotIn("001-1234567-8", record.msg)

    def test_logging_filter_masks_extra_fields(self):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="customer.updated",
            args=(),
            exc_info=None,
        )
        record.cedula_rnc = "101123456"
        MaskTaxIdFilter().filter(record)
        self.assertEqual(record.cedula_rnc, "***RNC***")

    def test_logging_filter_keeps_bare_digits_in_message(self):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="commission.resolve insurer_id=%s",
            args=(123456789,),
            exc_info=None,
        )
        MaskTaxIdFilter().filter(record)
        self.assertEqual(record.msg, "commission.resolve insurer_id=123456789")
