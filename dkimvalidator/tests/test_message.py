# This software is provided 'as-is', without any express or implied
# warranty.  In no event will the author be held liable for any damages
# arising from the use of this software.
#
# Permission is granted to anyone to use this software for any purpose,
# including commercial applications, and to alter it and redistribute it
# freely, subject to the following restrictions:
#
# 1. The origin of this software must not be misrepresented; you must not
#    claim that you wrote the original software. If you use this software
#    in a product, an acknowledgment in the product documentation would be
#    appreciated but is not required.
# 2. Altered source versions must be plainly marked as such, and must not be
#    misrepresented as being the original software.
# 3. This notice may not be removed or altered from any source distribution.
#

import unittest

from dkimvalidator.message import (
    Message,
    get_dkim_signatures,
    rfc822_parse,
    )
from dkimvalidator.util import HeaderParseError


class TestParseMessage(unittest.TestCase):

    def test_headers_and_body(self):
        headers, body = rfc822_parse(
            b'From: a\r\nSubject: b\r\n c\r\n\r\nbody\r\n')
        self.assertEqual([b'From: a\r\n', b'Subject: b\r\n c\r\n'], headers)
        self.assertEqual(b'body\r\n', body)

    def test_lf_line_endings(self):
        headers, body = rfc822_parse(b'From: a\n\nline1\nline2\n')
        self.assertEqual([b'From: a\r\n'], headers)
        self.assertEqual(b'line1\r\nline2\r\n', body)

    def test_no_body(self):
        headers, body = rfc822_parse(b'From: a\r\n')
        self.assertEqual([b'From: a\r\n'], headers)
        self.assertEqual(b'', body)

    def test_mbox_from_line_skipped(self):
        headers, body = rfc822_parse(
            b'From someone Mon Jan  1 00:00:00 2024\r\nFrom: a\r\n\r\nx')
        self.assertEqual([b'From: a\r\n'], headers)

    def test_leading_continuation(self):
        self.assertRaises(
            HeaderParseError, rfc822_parse, b' folded: a\r\n\r\n')

    def test_garbage_line(self):
        self.assertRaises(
            HeaderParseError, rfc822_parse, b'From: a\r\nnot a header\r\n\r\n')


class TestMessage(unittest.TestCase):

    def test_accepts_str(self):
        m = Message('From: a\nTo: b\n\nhello\n')
        self.assertEqual(
            ['From', 'To'], [h.get_label() for h in m.headers()])
        self.assertEqual(b'hello\r\n', m.body())

    def test_non_utf8_header_preserved(self):
        m = Message(b'Subject: caf\xe9\r\n\r\n')
        raw = m.headers()[0].get_raw()
        self.assertEqual(
            b'Subject: caf\xe9\r\n', raw.encode('utf-8', 'surrogateescape'))

    def test_headers_is_a_copy(self):
        m = Message(b'From: a\r\n\r\n')
        m.headers().append(None)
        self.assertEqual(1, len(m.headers()))

    def test_get_dkim_signatures(self):
        m = Message(
            b'DKIM-Signature: v=1; d=a\r\nFrom: a\r\n'
            b'dkim-signature: v=1; d=b\r\n\r\n')
        sigs = get_dkim_signatures(m)
        self.assertEqual(2, len(sigs))
        self.assertEqual('v=1; d=b', sigs[1].get_header().get_value())

    def test_unsigned(self):
        self.assertEqual([], get_dkim_signatures(Message(b'From: a\r\n\r\n')))


def test_suite():
    from unittest import TestLoader
    return TestLoader().loadTestsFromName(__name__)
