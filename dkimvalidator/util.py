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
# Copyright (c) 2011 William Grant <me@williamgrant.id.au>

import logging

__all__ = [
    'ArgumentError',
    'CryptoError',
    'DKIMException',
    'DNSError',
    'HeaderParseError',
    'InvalidTagSpec',
    'InvalidTagValueList',
    'get_default_logger',
    'parse_tag_value',
    ]


class DKIMException(Exception):
    """Base class for DKIM errors."""
    pass


class ArgumentError(DKIMException, ValueError):
    """Structurally invalid input supplied by the caller."""
    pass


class HeaderParseError(DKIMException):
    """A header block violates the RFC5322 folding rules."""
    pass


class DNSError(DKIMException):
    """Key lookup failed or returned a record that cannot be parsed."""
    pass


class CryptoError(DKIMException):
    """Bad signature encoding, unusable key or unsupported hash."""
    pass


class InvalidTagValueList(Exception):
    pass


class InvalidTagSpec(InvalidTagValueList):
    pass


def get_default_logger():
    """Get the default dkimvalidator logger."""
    logger = logging.getLogger('dkimvalidator')
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


def parse_tag_value(tag_list):
    """Parse a DKIM Tag=Value list.

    Interprets the syntax specified by RFC6376 section 3.2, leniently:
    empty segments and segments with an empty tag name are skipped, and
    when a tag is repeated the last value wins.
    Assumes that folding whitespace is already unfolded.

    @param tag_list: A string containing a DKIM Tag=Value list.
    @return: dict of tag names to values, in the order first seen.
    @raise InvalidTagSpec: a segment has no "=" at all.
    """
    tags = {}
    for tag_spec in tag_list.split(';'):
        if not tag_spec.strip():
            continue
        try:
            key, value = tag_spec.split('=', 1)
        except ValueError:
            raise InvalidTagSpec(tag_spec.strip())
        key = key.strip()
        if not key:
            continue
        tags[key] = value.strip()
    return tags
