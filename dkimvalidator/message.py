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

from dkimvalidator.header import (
    DKIMHeader,
    Header,
    )
from dkimvalidator.util import HeaderParseError

__all__ = [
    'Message',
    'get_dkim_signatures',
    'rfc822_parse',
    ]

#: Header text is kept as str; this round-trips arbitrary octets.
HEADER_ENCODING = ('utf-8', 'surrogateescape')


def rfc822_parse(message):
    """Parse a message in RFC822 format.

    @param message: The message in RFC822 format. Either CRLF or LF is an
    accepted line separator.
    @return: Returns a tuple of (headers, body) where headers is a list of
    raw header blocks, each a CRLF terminated byte string including any
    folded continuation lines. The body is a CRLF-separated string.
    """
    headers = []
    lines = re.split(b"\r?\n", message)
    i = 0
    while i < len(lines):
        if len(lines[i]) == 0:
            # End of headers, return what we have plus the body, excluding
            # the blank line.
            i += 1
            break
        if lines[i][0] in (0x09, 0x20):
            if not headers:
                raise HeaderParseError(
                    "Message starts with a folded header line: %r" % lines[i])
            headers[-1].append(lines[i])
        elif re.match(br"[\x21-\x7e]+?[ \t]*:", lines[i]):
            headers.append([lines[i]])
        elif lines[i].startswith(b"From "):
            pass
        else:
            raise HeaderParseError(
                "Unexpected characters in RFC822 header: %r" % lines[i])
        i += 1
    headers = [b"\r\n".join(h) + b"\r\n" for h in headers]
    return (headers, b"\r\n".join(lines[i:]))


class Message(object):
    """A raw message split into ordered headers and a body.

    The original header text is preserved verbatim, apart from line endings
    which are normalized to CRLF.
    """

    def __init__(self, message):
        if isinstance(message, str):
            message = message.encode(*HEADER_ENCODING)
        raw_headers, self._body = rfc822_parse(message)
        self._headers = [Header(h.decode(*HEADER_ENCODING))
                         for h in raw_headers]

    def headers(self):
        """The headers, in the order they appear in the message."""
        return list(self._headers)

    def body(self):
        return self._body


def get_dkim_signatures(message):
    """Return a L{DKIMHeader} for each DKIM-Signature header of a message,
    topmost first."""
    signatures = []
    for header in message.headers():
        dkim_header = DKIMHeader(header)
        if dkim_header.is_dkim_signature():
            signatures.append(dkim_header)
    return signatures
