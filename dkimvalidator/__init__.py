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
#
# This has been modified from the original software.
# Copyright (c) 2016 Scott Kitterman <scott@kitterman.com>
#


import base64
import re
import time

from dkimvalidator.canonicalization import (
    ALGORITHMS,
    CanonicalizationPolicy,
    InvalidCanonicalizationPolicyError,
    )
from dkimvalidator.crypto import (
    DEFAULT_HASH_ALGORITHM,
    HASH_ALGORITHMS,
    KEY_ALGORITHMS,
    parse_public_key,
    validate_signature,
    )
from dkimvalidator.dnsplug import Resolver
from dkimvalidator.header import (
    CRLF,
    DKIMHeader,
    Header,
    )
from dkimvalidator.message import (
    Message,
    get_dkim_signatures,
    )
from dkimvalidator.results import (
    ValidationResult,
    ValidationResults,
    )
from dkimvalidator.util import (
    ArgumentError,
    CryptoError,
    DKIMException,
    DNSError,
    HeaderParseError,
    InvalidTagValueList,
    get_default_logger,
    parse_tag_value,
    )

__all__ = [
    "ArgumentError",
    "CryptoError",
    "DKIMException",
    "DNSError",
    "HeaderParseError",
    "Header",
    "DKIMHeader",
    "Message",
    "Resolver",
    "RELAXED",
    "SIMPLE",
    "Signature",
    "ValidationResult",
    "ValidationResults",
    "Validator",
    "select_headers",
    "signed_header_data",
    "validate",
    "verify",
]

RELAXED = 'relaxed'
SIMPLE = 'simple'

#: Tags every DKIM-Signature must carry (RFC6376 section 6.1.1).
REQUIRED_TAGS = ('v', 'a', 'b', 'bh', 'd', 'h', 's')

DEFAULT_QUERY_METHOD = 'dns/txt'

RE_BASE64 = re.compile(r"[0-9A-Za-z+/]+=*$")
RE_DECIMAL = re.compile(r"\d{1,76}$")
RE_DNS_NAME = re.compile(r"[A-Za-z0-9_-]+(?:\.[A-Za-z0-9_-]+)*$")


def is_valid_dns_name_syntax(name):
    """Check the dot structure of a d= or s= value.

    >>> is_valid_dns_name_syntax('example.com')
    True
    >>> is_valid_dns_name_syntax('.example.com')
    False
    >>> is_valid_dns_name_syntax('example..com')
    False
    """
    return bool(name) and '' not in name.split('.')


def select_headers(headers, include_headers):
    r"""Select message header fields to be verified.

    Repeated names select instances from the bottom of the header block
    upwards (RFC6376 section 5.4.2); names with no unused instance left
    select nothing.

    >>> h = [Header('from: biz\r\n'), Header('foo: bar\r\n'),
    ...      Header('from: baz\r\n'), Header('subject: boring\r\n')]
    >>> i = ['from', 'subject', 'to', 'from']
    >>> [x.get_raw_value() for x in select_headers(h, i)]
    ['baz', 'boring', 'biz']
    >>> h = [Header('From: biz\r\n'), Header('Foo: bar\r\n'),
    ...      Header('Subject: Boring\r\n')]
    >>> [x.get_raw_value() for x in select_headers(h, i)]
    ['biz', 'Boring']
    """
    sign_headers = []
    lastindex = {}
    for h in include_headers:
        h = h.lower()
        i = lastindex.get(h, len(headers))
        while i > 0:
            i -= 1
            if h == headers[i].get_lower_label():
                sign_headers.append(headers[i])
                break
        lastindex[h] = i
    return sign_headers


def signed_header_data(canonicalize, headers, include_headers, sigheader):
    """Return the text hashed for the signed message header fields.

    @param canonicalize: header canonicalization algorithm
    @param headers: every header of the message, in order
    @param include_headers: lowercase header names from the h= tag
    @param sigheader: the DKIM-Signature L{Header} being verified
    """
    sign_headers = select_headers(headers, include_headers)
    data = ''.join(canonicalize.canonicalize_header(h) for h in sign_headers)
    blanked = Header(DKIMHeader.remove_signature_value(sigheader.get_raw()))
    cheader = canonicalize.canonicalize_header(blanked)
    # the dkim sig is hashed with no trailing crlf, even if the
    # canonicalization algorithm would add one.
    if cheader.endswith(CRLF):
        cheader = cheader[:-len(CRLF)]
    return data + cheader


class Signature(object):
    """Checked, typed view of the tags of one DKIM-Signature header.

    The raw tag dict is kept in L{tags} so that unknown tags survive.
    """

    def __init__(self, tags, key_algorithm, hash_algorithm, policy,
                 query_methods, length=None, timestamp=None,
                 expiration=None):
        self.tags = tags
        self.version = tags['v']
        self.domain = tags['d']
        self.selector = tags['s']
        self.identity = tags.get('i')
        self.body_hash = tags['bh']
        self.signature = tags['b']
        self.include_headers = [
            x.lower() for x in re.split(r"\s*:\s*", tags['h']) if x]
        self.key_algorithm = key_algorithm
        self.hash_algorithm = hash_algorithm
        self.policy = policy
        self.query_methods = query_methods
        self.length = length
        self.timestamp = timestamp
        self.expiration = expiration

    def __repr__(self):
        return '<Signature d=%s s=%s a=%s-%s>' % (
            self.domain, self.selector, self.key_algorithm,
            self.hash_algorithm)

    def dns_name(self):
        return '%s._domainkey.%s' % (self.selector, self.domain)


#: Validate the DKIM signatures of an RFC5322 message.
class Validator(object):

    #: Create a Validator for a message.
    #:
    #: @param message: a L{Message}, or the raw message as bytes or str
    #: (with either LF or CRLF line endings)
    #: @param resolver: an object with a get_text_records(name) method
    #: returning a list of TXT record strings (default L{Resolver})
    #: @param logger: a logger to which debug info will be written
    #: (default the "dkimvalidator" logger)
    #: @param minkey: the minimum key size in bits to accept
    def __init__(self, message, resolver=None, logger=None, minkey=1024):
        if not isinstance(message, Message):
            message = Message(message)
        self.message = message
        self.resolver = resolver
        if logger is None:
            logger = get_default_logger()
        self.logger = logger
        #: Minimum public key size.  Shorter keys fail validation.
        self.minkey = minkey

    def get_message(self):
        return self.message

    def get_resolver(self):
        if self.resolver is None:
            self.resolver = Resolver(logger=self.logger)
        return self.resolver

    #: Validate every DKIM signature on the message.
    #: @return: L{ValidationResults} with one L{ValidationResult} per
    #: signature, in the order the signatures appear
    def validate(self):
        results = ValidationResults()
        signatures = get_dkim_signatures(self.message)
        if not signatures:
            result = ValidationResult()
            result.add_fail("Message is not DKIM signed: "
                            "no signature present")
            results.add_result(result)
            return results
        for dkim_header in signatures:
            result = self.validate_dkim_header(dkim_header)
            self.logger.debug("%s/%s: %s" % (
                result.get_domain(), result.get_selector(),
                'pass' if result.is_valid() else 'fail'))
            results.add_result(result)
        return results

    @classmethod
    def is_valid(cls, message, resolver=None, logger=None):
        """Return True if any DKIM signature on a message validates."""
        v = cls(message, resolver=resolver, logger=logger)
        return v.validate().is_valid()

    def validate_dkim_header(self, dkim_header):
        """Validate a single DKIM-Signature header of the message.

        @param dkim_header: a L{DKIMHeader} taken from the message
        @return: L{ValidationResult}
        """
        result = ValidationResult()
        try:
            tags = self.extract_dkim_tags(dkim_header)
        except InvalidTagValueList as e:
            result.add_fail("DKIM-Signature tags could not be parsed: %s" % e)
            return result
        self.logger.debug("sig: %r" % tags)
        result.domain = tags.get('d', '')
        result.selector = tags.get('s', '')

        missing = [tag for tag in REQUIRED_TAGS if tag not in tags]
        for tag in missing:
            result.add_fail("Signature missing required tag: %s" % tag)
        if missing:
            return result

        sig = self.check_signature_tags(tags, result)
        if sig is None:
            return result

        try:
            keys = self.fetch_public_keys(sig.domain, sig.selector)
        except DNSError as e:
            self.logger.warning("%s" % e)
            result.add_fail(
                "Public key unavailable, missing public key: %s" % e)
            return result
        if not keys:
            result.add_fail("Public key unavailable, missing public key: "
                            "no DKIM record found at %s" % sig.dns_name())
            return result

        data = signed_header_data(
            sig.policy.header_algorithm, self.message.headers(),
            sig.include_headers, dkim_header.get_header())
        self.logger.debug("hashed headers: %r" % data)

        body = self.canonicalize_body(sig.policy.body_algorithm.name)
        if sig.length is not None:
            if sig.length > len(body):
                result.add_fail(
                    "Body length tag (l=%d) is longer than the "
                    "canonicalized body (%d bytes)" % (sig.length, len(body)))
            body = body[:sig.length]
        bodyhash = base64.b64encode(
            HASH_ALGORITHMS[sig.hash_algorithm](body).digest()).decode('ascii')
        self.logger.debug("bh: %s" % bodyhash)
        if bodyhash != sig.body_hash:
            result.add_fail(
                "Computed body hash does not match signature body hash "
                "(got %s, expected %s)" % (bodyhash, sig.body_hash))

        for number, key in enumerate(keys, 1):
            self.check_public_key(sig, key, number, data, result)
        return result

    def check_signature_tags(self, tags, result):
        """Run the syntactic and policy checks on signature tags.

        Failures and warnings are recorded on result.

        @return: a L{Signature}, or None when validation cannot go on
        """
        abort = False
        if tags['v'] != '1':
            result.add_fail("Incompatible DKIM version: %s" % tags['v'])

        domain = tags['d']
        selector = tags['s']
        if not is_valid_dns_name_syntax(domain):
            result.add_fail("Signing domain is invalid: %s." % domain)
            abort = True
        if not is_valid_dns_name_syntax(selector):
            result.add_fail("Signing selector is invalid: %s." % selector)
            abort = True

        if 'i' in tags:
            identity = tags['i']
            if '@' not in identity:
                result.add_fail(
                    "Agent or user identifier is invalid: %s" % identity)
            else:
                idomain = identity.rsplit('@', 1)[1].lower()
                if (idomain != domain.lower() and
                        not idomain.endswith('.' + domain.lower())):
                    result.add_fail(
                        "Agent or user identifier does not match domain: "
                        "%s (d=%s)" % (identity, domain))

        include_headers = [x.lower() for x in re.split(r"\s*:\s*", tags['h'])]
        if 'from' not in include_headers:
            result.add_fail("From header is not signed")

        timestamp = expiration = None
        if 't' in tags:
            if RE_DECIMAL.match(tags['t']) is None:
                result.add_fail(
                    "Signature timestamp is not a decimal integer: t=%s"
                    % tags['t'])
            else:
                timestamp = int(tags['t'])
        if 'x' in tags:
            if RE_DECIMAL.match(tags['x']) is None:
                result.add_fail(
                    "Signature expiry is not a decimal integer: x=%s"
                    % tags['x'])
            else:
                expiration = int(tags['x'])
        if expiration is not None:
            if timestamp is not None and expiration <= timestamp:
                result.add_fail(
                    "Signature expiry time (x=%d) is not after its "
                    "timestamp (t=%d)" % (expiration, timestamp))
            if expiration <= int(time.time()):
                result.add_fail(
                    "Signature has expired (x=%d)" % expiration)

        key_algorithm = hash_algorithm = None
        algorithm = tags['a'].lower().split('-')
        if (len(algorithm) != 2 or algorithm[0] not in KEY_ALGORITHMS or
                algorithm[1] not in HASH_ALGORITHMS):
            result.add_fail(
                "Signature algorithm is invalid or unsupported: %s"
                % tags['a'])
            abort = True
        else:
            key_algorithm, hash_algorithm = algorithm

        policy = None
        try:
            policy = CanonicalizationPolicy.from_c_value(tags.get('c'))
        except InvalidCanonicalizationPolicyError as e:
            result.add_fail(
                "Canonicalization algorithm is invalid: %s" % e.args[0])
            abort = True

        if RE_BASE64.match(tags['b']) is None:
            result.add_fail("Signature (b=) is not valid base64")
        if RE_BASE64.match(tags['bh']) is None:
            result.add_fail("Body hash (bh=) is not valid base64")

        if 'q' in tags:
            query_methods = tags['q'].lower().split(':')
        else:
            result.add_warning(
                "Signature has no query method (q=) tag, assuming %s"
                % DEFAULT_QUERY_METHOD)
            query_methods = [DEFAULT_QUERY_METHOD]
        if DEFAULT_QUERY_METHOD not in query_methods:
            result.add_fail(
                "Public key unavailable: unknown query method (q=%s)"
                % tags['q'])
            abort = True

        length = None
        if 'l' in tags:
            result.add_warning(
                "Signature has a body length (l=) tag; this is considered "
                "a security weakness as it allows unsigned content to be "
                "appended to the message")
            if RE_DECIMAL.match(tags['l']) is None:
                result.add_fail(
                    "Body length is not a decimal integer: l=%s" % tags['l'])
                abort = True
            else:
                length = int(tags['l'])

        if abort:
            return None
        return Signature(tags, key_algorithm, hash_algorithm, policy,
                         query_methods, length=length, timestamp=timestamp,
                         expiration=expiration)

    def check_public_key(self, sig, key, number, data, result):
        """Check one candidate key record against a signature and, if it
        matches, verify the signature with it."""
        label = "%s key #%d" % (sig.domain, number)
        fails = []
        if 'v' in key and key['v'] != 'DKIM1':
            fails.append("Public key version does not match signature "
                         "version (%s)" % label)
        if 'h' in key and \
                sig.hash_algorithm not in key['h'].lower().split(':'):
            fails.append("Public key hash algorithm does not match "
                         "signature hash algorithm (%s)" % label)
        if 'k' in key and key['k'].lower() != sig.key_algorithm:
            fails.append("Public key type does not match signature key "
                         "type (%s)" % label)
        if 's' in key:
            services = key['s'].lower().split(':')
            if '*' not in services and 'email' not in services:
                fails.append("Public key service type does not permit "
                             "email (%s)" % label)
        if 'y' in key.get('t', '').lower().split(':'):
            result.add_warning("Public key is in testing mode (%s)" % label)
        if 'p' not in key:
            fails.append("Public key record has no p= tag (%s)" % label)
        elif not key['p']:
            fails.append("Public key has been revoked (%s)" % label)
        if fails:
            for fail in fails:
                result.add_fail(fail)
            return

        try:
            pk = parse_public_key(key['p'])
            if pk.key_size < self.minkey:
                result.add_fail("Public key too small: %d bits (%s)"
                                % (pk.key_size, label))
                return
            valid = self.validate_signature(
                key['p'], sig.signature, data, sig.hash_algorithm)
        except CryptoError as e:
            result.add_fail("Signature could not be verified (%s): %s"
                            % (label, e))
            return
        if valid:
            result.add_pass("Signature verified (%s)" % label)
        else:
            result.add_fail("Signature did not verify (%s)" % label)

    @staticmethod
    def extract_dkim_tags(header):
        """Return the tag dict of a DKIM-Signature header.

        @param header: a L{Header} or L{DKIMHeader}
        @raise ArgumentError: the header is not a DKIM signature
        """
        if not isinstance(header, DKIMHeader):
            header = DKIMHeader(header)
        if not header.is_dkim_signature():
            raise ArgumentError(
                "Attempted to extract DKIM tags from a non-DKIM header: %s"
                % header.get_header().get_label())
        return parse_tag_value(header.get_header().get_value_without_spaces())

    def fetch_public_keys(self, domain, selector):
        """Fetch and parse the DKIM key records for a domain and selector.

        @return: list of tag dicts, one per TXT record; empty if none exist
        @raise DNSError: invalid domain or selector, lookup failure, or a
        record that cannot be parsed
        """
        if RE_DNS_NAME.match(domain) is None:
            raise DNSError("Invalid domain: %s" % domain)
        if RE_DNS_NAME.match(selector) is None:
            raise DNSError("Invalid selector: %s" % selector)
        name = '%s._domainkey.%s' % (selector, domain)
        self.logger.debug("fetching public keys from %s" % name)
        records = self.get_resolver().get_text_records(name) or []
        keys = []
        for record in records:
            try:
                keys.append(parse_tag_value(re.sub(r"\s+", "", record)))
            except InvalidTagValueList as e:
                raise DNSError(
                    "Invalid DKIM record at %s: %s (%s)" % (name, record, e))
        return keys

    def canonicalize_headers(self, headers, style=RELAXED):
        """Canonicalize a list of headers.

        @param style: 'relaxed' or 'simple'
        @return: the canonicalized headers, concatenated
        @raise ArgumentError: headers is empty or style is unknown
        """
        if not headers:
            raise ArgumentError("Attempted to canonicalize empty header list")
        try:
            algorithm = ALGORITHMS[style]
        except KeyError:
            raise ArgumentError("Unknown canonicalization: %s" % style)
        return ''.join(algorithm.canonicalize_header(h) for h in headers)

    def canonicalize_body(self, style=RELAXED, length=None):
        """Canonicalize the message body.

        @param style: 'relaxed' or 'simple'
        @param length: if given, only this many leading bytes are returned
        @return: bytes
        """
        try:
            algorithm = ALGORITHMS[style]
        except KeyError:
            raise ArgumentError("Unknown canonicalization: %s" % style)
        body = algorithm.canonicalize_body(self.message.body())
        if length is not None:
            body = body[:length]
        return body

    @staticmethod
    def validate_signature(public_key, signature, data,
                           hash_algorithm=DEFAULT_HASH_ALGORITHM):
        """Verify a signature over data; see L{crypto.validate_signature}."""
        return validate_signature(public_key, signature, data, hash_algorithm)


def validate(message, resolver=None, logger=None, minkey=1024):
    """Validate every DKIM signature on an RFC822 formatted message.
    @param message: an RFC822 formatted message (with either \\n or \\r\\n line endings)
    @param resolver: an object with a get_text_records(name) method
    @param logger: a logger to which debug info will be written (default None)
    @param minkey: the minimum key size to accept
    @return: L{ValidationResults}
    """
    if logger is None:
        logger = get_default_logger()
    try:
        v = Validator(message, resolver=resolver, logger=logger, minkey=minkey)
    except DKIMException as x:
        logger.error("%s" % x)
        results = ValidationResults()
        result = ValidationResult()
        result.add_fail("Message could not be parsed: %s" % x)
        results.add_result(result)
        return results
    return v.validate()


def verify(message, resolver=None, logger=None, minkey=1024):
    """Verify the DKIM signatures on an RFC822 formatted message.
    @param message: an RFC822 formatted message (with either \\n or \\r\\n line endings)
    @param logger: a logger to which debug info will be written (default None)
    @return: True if any signature verifies or False otherwise
    """
    return validate(message, resolver=resolver, logger=logger,
                    minkey=minkey).is_valid()
