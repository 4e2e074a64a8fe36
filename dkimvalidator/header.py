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
import email.errors
from email.header import decode_header, make_header

from dkimvalidator.util import (
    ArgumentError,
    HeaderParseError,
    )

__all__ = [
    'CRLF',
    'DKIMHeader',
    'Header',
    'SIGNATURE_HEADER',
    ]

CRLF = '\r\n'
#: Replacement for a CRLF+WSP fold when unfolding.
FWS = ' '

SIGNATURE_HEADER = 'dkim-signature'

RE_LABEL_LINE = re.compile(r'^([^ \t]+?)[ \t]*:[ \t]*(.*)$', re.DOTALL)
RE_CONTINUATION = re.compile(r'^[ \t]+', re.DOTALL)
RE_FOLD = re.compile(r'\r\n[ \t]+')

# FWS  =  ([*WSP CRLF] 1*WSP) /  obs-FWS ; Folding white space  [RFC5322]
RE_FWS = r'(?:(?:\s*\r?\n)?\s+)?'
RE_BTAG = re.compile(
    r'((?:^|[;\s])b' + RE_FWS + r'=)(?:' + RE_FWS + r'[a-zA-Z0-9+/=])*')


class Header(object):
    """A single message header field.

    Holds the untouched text of the field (label, colon, value, any folded
    continuation lines and the final line break) and exposes the label and
    the value in raw, decoded and unfolded forms.

    The block must hold exactly one field: every line after the first is a
    folded continuation. A second "label:" line raises L{HeaderParseError};
    splitting a header section into fields is done by
    L{dkimvalidator.message.rfc822_parse}.
    """

    def __init__(self, header):
        if not header:
            raise ArgumentError('Header is empty')
        self._raw = header
        # The trailing break belongs to the header but is not a line of it.
        lines = header.rstrip('\r\n').split(CRLF)
        m = RE_LABEL_LINE.match(lines[0])
        if m is None:
            if RE_CONTINUATION.match(lines[0]):
                raise HeaderParseError(
                    'Invalid header starting with a folded line: %r' % lines[0])
            raise HeaderParseError('Unexpected header line: %r' % lines[0])
        self._label = m.group(1)
        value = [m.group(2)]
        for line in lines[1:]:
            if not RE_CONTINUATION.match(line):
                raise HeaderParseError(
                    'Unexpected line in %s header: %r' % (self._label, line))
            value.append(line)
        self._value = CRLF.join(value)

    def __repr__(self):
        return '<Header %r>' % self._raw

    def get_label(self):
        """The header label as written."""
        return self._label

    def get_lower_label(self):
        return self._label.lower()

    def get_raw_value(self):
        """The value after the colon, still folded and encoded."""
        return self._value

    def get_decoded_value(self):
        """The value with RFC2047 encoded words decoded, when the value
        starts with one.

        Decoding happens before unfolding. A value that cannot be decoded
        is returned unchanged.
        """
        if not self._value.startswith("=?"):
            return self._value
        try:
            return str(make_header(decode_header(self._value)))
        except (LookupError, UnicodeDecodeError,
                email.errors.HeaderParseError):
            # Unknown charset or broken encoding; leave the words alone.
            return self._value

    def get_unfolded_value(self):
        """The undecoded value with each fold collapsed to one space."""
        return RE_FOLD.sub(FWS, self._value)

    def get_value(self):
        """The value fully decoded and unfolded."""
        return RE_FOLD.sub(FWS, self.get_decoded_value())

    def get_value_without_spaces(self):
        """The decoded, unfolded value with all horizontal whitespace removed.

        Used for headers such as DKIM-Signature whose values are wrapped
        purely for readability.
        """
        return re.sub(r'[ \t]+', '', self.get_value())

    def get_raw(self):
        """The entire untouched header, including label and folded lines."""
        return self._raw

    label = property(get_label)
    value = property(get_value)
    raw = property(get_raw)


class DKIMHeader(object):
    """Adds DKIM canonicalization and signature helpers to a L{Header}."""

    def __init__(self, header):
        self.header = header

    def __repr__(self):
        return '<DKIMHeader %r>' % self.header.get_raw()

    def get_header(self):
        return self.header

    def relaxed_canonicalized(self):
        """The header canonicalized with the RFC6376 section 3.4.2 "relaxed"
        algorithm.

        >>> DKIMHeader(Header('B : Y\\t\\r\\n\\tZ  \\r\\n')).relaxed_canonicalized()
        'b:Y Z\\r\\n'
        """
        label = self.header.get_lower_label().strip()
        # Works on the value as transmitted; encoded words stay encoded.
        value = re.sub(r'\s+', ' ', self.header.get_unfolded_value())
        return label + ':' + value.strip(' \r\n\t') + CRLF

    def simple_canonicalized(self):
        """The header canonicalized with the "simple" algorithm: unchanged."""
        return self.header.get_raw()

    def is_dkim_signature(self):
        return self.header.get_lower_label() == SIGNATURE_HEADER

    @staticmethod
    def remove_signature_value(header):
        """Blank the value of the b= tag of a raw DKIM-Signature header.

        >>> DKIMHeader.remove_signature_value('DKIM-Signature: bh=x=; b=ab\\r\\n cd=\\r\\n')
        'DKIM-Signature: bh=x=; b=\\r\\n'
        """
        label, colon, value = header.rstrip("\r\n").partition(":")
        # The tag list starts right after the colon.
        stripped = label + colon + RE_BTAG.sub(r"\1", value)
        if header.endswith(CRLF):
            stripped += CRLF
        return stripped
