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
# Copyright (c) 2008 Greg Hewgill http://hewgill.com
#
# This has been modified from the original software.
# Copyright (c) 2011 William Grant <me@williamgrant.id.au>

import re

from dkimvalidator.header import DKIMHeader

__all__ = [
    'CanonicalizationPolicy',
    'InvalidCanonicalizationPolicyError',
    'Relaxed',
    'Simple',
    ]


def strip_trailing_lines(body):
    """Remove all empty lines at the end of a body, then terminate any
    remaining content with exactly one CRLF."""
    body = re.sub(b"(?:\r\n)*\\Z", b"", body)
    if body:
        body += b"\r\n"
    return body


class Simple:
    """Class that represents the "simple" canonicalization algorithm."""

    name = "simple"

    @staticmethod
    def canonicalize_header(header):
        # No changes to headers.
        return DKIMHeader(header).simple_canonicalized()

    @staticmethod
    def canonicalize_body(body):
        # Ignore all empty lines at the end of the message body.
        return strip_trailing_lines(body)


class Relaxed:
    """Class that represents the "relaxed" canonicalization algorithm."""

    name = "relaxed"

    @staticmethod
    def canonicalize_header(header):
        # Convert all header field names to lowercase.
        # Unfold all header lines.
        # Compress WSP to single space.
        # Remove all WSP at the start or end of the field value (strip).
        return DKIMHeader(header).relaxed_canonicalized()

    @staticmethod
    def canonicalize_body(body):
        # Remove all trailing WSP at end of lines.
        removed_trailing_wsp = re.sub(b"[\\x09\\x20]+(?=\r\n|\\Z)", b"", body)
        # Compress non-line-ending WSP to single space.
        compressed_wsp = re.sub(br"[\x09\x20]+", b" ", removed_trailing_wsp)
        # Ignore all empty lines at the end of the message body.
        return strip_trailing_lines(compressed_wsp)


ALGORITHMS = dict((c.name, c) for c in (Simple, Relaxed))


class InvalidCanonicalizationPolicyError(Exception):
    """The c= value could not be parsed."""
    pass


class CanonicalizationPolicy:
    """The pair of header and body algorithms named by a c= tag."""

    def __init__(self, header_algorithm, body_algorithm):
        self.header_algorithm = header_algorithm
        self.body_algorithm = body_algorithm

    @classmethod
    def from_c_value(cls, c):
        """Construct the canonicalization policy described by a c= value.

        May raise an L{InvalidCanonicalizationPolicyError} if the given
        value is invalid

        @param c: c= value from a DKIM-Signature header field, or None
        @return: a L{CanonicalizationPolicy}

        >>> p = CanonicalizationPolicy.from_c_value('relaxed')
        >>> p.to_c_value()
        'relaxed/simple'
        """
        if c is None:
            c = 'simple/simple'
        m = c.split('/')
        if len(m) not in (1, 2):
            raise InvalidCanonicalizationPolicyError(c)
        if len(m) == 1:
            m.append('simple')
        can_headers, can_body = m
        try:
            header_algorithm = ALGORITHMS[can_headers.lower()]
            body_algorithm = ALGORITHMS[can_body.lower()]
        except KeyError as e:
            raise InvalidCanonicalizationPolicyError(e.args[0])
        return cls(header_algorithm, body_algorithm)

    def to_c_value(self):
        return '/'.join(
            (self.header_algorithm.name, self.body_algorithm.name))

    def canonicalize_headers(self, headers):
        return ''.join(
            self.header_algorithm.canonicalize_header(h) for h in headers)

    def canonicalize_body(self, body):
        return self.body_algorithm.canonicalize_body(body)
