"""
Tests for src/modules/attachment_scanner.py
"""

import unittest

from src.modules.attachment_scanner import AttachmentScanner, decode_filename
from src.modules.email_record import AttachmentInfo, GENERIC_ATTACHMENT_TYPE


class TestAttachmentScanner(unittest.TestCase):

    def setUp(self):
        self.scanner = AttachmentScanner()

    def test_plain_and_rfc2231_filenames_in_order(self):
        raw = (
            "Subject: files\r\n\r\n"
            "--b\r\n"
            "Content-Disposition: attachment; filename=\"a.txt\"\r\n\r\nAAA\r\n"
            "--b\r\n"
            "Content-Disposition: attachment; filename*=UTF-8''b%20c.txt\r\n\r\nBBB\r\n"
            "--b--\r\n"
        )
        attachments = self.scanner.scan(raw)

        self.assertEqual(
            attachments,
            [AttachmentInfo(name="a.txt"), AttachmentInfo(name="b c.txt")]
        )
        self.assertTrue(all(a.type == GENERIC_ATTACHMENT_TYPE for a in attachments))

    def test_inline_parts_are_included(self):
        raw = "Content-Disposition: inline; filename=logo.png\n"
        self.assertEqual([a.name for a in self.scanner.scan(raw)], ["logo.png"])

    def test_disposition_type_is_case_insensitive(self):
        raw = "content-disposition: ATTACHMENT; FILENAME=\"report.docm\"\n"
        self.assertEqual([a.name for a in self.scanner.scan(raw)], ["report.docm"])

    def test_folded_filename_parameter(self):
        raw = "Content-Disposition: attachment;\r\n\tfilename=\"folded.pdf\"\r\n"
        self.assertEqual([a.name for a in self.scanner.scan(raw)], ["folded.pdf"])

    def test_duplicates_are_preserved(self):
        raw = (
            "Content-Disposition: attachment; filename=\"same.txt\"\n"
            "Content-Disposition: attachment; filename=\"same.txt\"\n"
        )
        self.assertEqual(len(self.scanner.scan(raw)), 2)

    def test_empty_names_are_dropped(self):
        raw = "Content-Disposition: attachment; filename=\"\"\n"
        self.assertEqual(self.scanner.scan(raw), [])

    def test_apostrophes_in_plain_filename_survive(self):
        raw = "Content-Disposition: attachment; filename=\"Bob's 'Q1' notes.txt\"\n"
        self.assertEqual([a.name for a in self.scanner.scan(raw)], ["Bob's 'Q1' notes.txt"])

    def test_extended_value_with_unknown_charset_not_truncated(self):
        raw = "Content-Disposition: attachment; filename*=x-nope''Q1%20plan.txt\n"
        self.assertEqual([a.name for a in self.scanner.scan(raw)], ["x-nope''Q1%20plan.txt"])

    def test_form_data_is_not_an_attachment(self):
        raw = "Content-Disposition: form-data; filename=\"upload.bin\"\n"
        self.assertEqual(self.scanner.scan(raw), [])

    def test_no_declarations(self):
        self.assertEqual(self.scanner.scan(""), [])
        self.assertEqual(self.scanner.scan("Subject: nothing attached\n\nhello"), [])


class TestDecodeFilename(unittest.TestCase):

    def test_strips_surrounding_quotes(self):
        self.assertEqual(decode_filename('"quoted.txt"'), "quoted.txt")
        self.assertEqual(decode_filename("'single.txt'"), "single.txt")
        self.assertEqual(decode_filename('  "spaced.txt"  '), "spaced.txt")

    def test_rfc2231_utf8(self):
        self.assertEqual(decode_filename("UTF-8''%E2%82%AC%20rates.pdf", extended=True), "€ rates.pdf")

    def test_rfc2231_with_language_and_other_charset(self):
        self.assertEqual(decode_filename("iso-8859-1'en'caf%E9.txt", extended=True), "café.txt")

    def test_unknown_charset_left_as_declared(self):
        self.assertEqual(decode_filename("x-unknown''a%20b.txt", extended=True), "x-unknown''a%20b.txt")

    def test_plain_value_is_never_percent_decoded(self):
        self.assertEqual(decode_filename("UTF-8''a%20b.txt"), "UTF-8''a%20b.txt")
        self.assertEqual(decode_filename('"Bob\'s \'Q1\' notes.txt"'), "Bob\'s \'Q1\' notes.txt")

    def test_malformed_escape_is_left_alone(self):
        self.assertEqual(decode_filename("UTF-8''100%.txt", extended=True), "100%.txt")


if __name__ == '__main__':
    unittest.main()
