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
from unittest import mock

import dns.exception
import dns.resolver

from dkimvalidator.dnsplug import (
    Resolver,
    get_txt_records,
    )
from dkimvalidator.util import DNSError


class FakeRdata(object):

    def __init__(self, *strings):
        self.strings = strings


class FakeAnswer(object):

    def __init__(self, rrset):
        self.rrset = rrset


class TestResolver(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch('dns.resolver.Resolver')
        self.dns_resolver = patcher.start()
        self.addCleanup(patcher.stop)
        self.resolve = self.dns_resolver.return_value.resolve

    def test_strings_are_joined(self):
        self.resolve.return_value = FakeAnswer(
            [FakeRdata(b'v=DKIM1; ', b'p=abc'), FakeRdata(b'v=DKIM1; p=')])
        self.assertEqual(
            ['v=DKIM1; p=abc', 'v=DKIM1; p='],
            Resolver().get_text_records('s._domainkey.example.com'))
        args, kwargs = self.resolve.call_args
        self.assertEqual('s._domainkey.example.com', args[0])
        self.assertFalse(kwargs['raise_on_no_answer'])

    def test_nxdomain(self):
        self.resolve.side_effect = dns.resolver.NXDOMAIN()
        self.assertEqual([], Resolver().get_text_records('example.com'))

    def test_no_answer(self):
        self.resolve.return_value = FakeAnswer(None)
        self.assertEqual([], Resolver().get_text_records('example.com'))

    def test_timeout(self):
        self.resolve.side_effect = dns.exception.Timeout()
        self.assertRaises(
            DNSError, Resolver().get_text_records, 'example.com')

    def test_timeout_and_nameservers_configured(self):
        r = Resolver(timeout=2, nameservers=['192.0.2.1'])
        self.dns_resolver.assert_called_once_with(configure=False)
        self.assertEqual(['192.0.2.1'], r._resolver.nameservers)
        self.assertEqual(2, r._resolver.lifetime)

    def test_unconfigurable(self):
        self.dns_resolver.side_effect = dns.resolver.NoResolverConfiguration()
        self.assertRaises(DNSError, Resolver)

    def test_get_txt_records(self):
        self.resolve.return_value = FakeAnswer([FakeRdata(b'a=b')])
        self.assertEqual(['a=b'], get_txt_records('example.com'))


def test_suite():
    from unittest import TestLoader
    return TestLoader().loadTestsFromName(__name__)
