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

__all__ = [
    'DEFAULT_HASH_ALGORITHM',
    'HASH_ALGORITHMS',
    'KEY_ALGORITHMS',
    'parse_public_key',
    'validate_signature',
    'wrap_public_key',
    ]

import base64
import binascii
import hashlib
import re
import textwrap

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from dkimvalidator.util import CryptoError


DEFAULT_HASH_ALGORITHM = 'sha256'

#: Hash functions for the body hash, keyed by the hash part of a= .
HASH_ALGORITHMS = {
    'sha1': hashlib.sha1,
    'sha256': hashlib.sha256,
    }

#: Hashes accepted by the RSASSA-PKCS1-v1_5 verifier.
SIGNATURE_HASHES = {
    'sha1': hashes.SHA1,
    'sha256': hashes.SHA256,
    }

KEY_ALGORITHMS = ('rsa',)


def wrap_public_key(data):
    """Wrap a DNS published base64 public key in a PEM envelope.

    >>> print(wrap_public_key('QUJD'))
    -----BEGIN PUBLIC KEY-----
    QUJD
    -----END PUBLIC KEY-----
    """
    data = re.sub(r'\s+', '', data)
    return '-----BEGIN PUBLIC KEY-----\n%s\n-----END PUBLIC KEY-----' % (
        '\n'.join(textwrap.wrap(data, 64)))


def parse_public_key(data):
    """Parse an RSA public key.

    @param data: base64 DER-encoded X.509 subjectPublicKeyInfo, as found in
    the p= tag of a DKIM key record.
    @return: RSA public key
    @raise CryptoError: the data is not a usable RSA public key.
    """
    try:
        pk = serialization.load_pem_public_key(
            wrap_public_key(data).encode('ascii'))
    except (ValueError, UnicodeEncodeError, UnsupportedAlgorithm) as e:
        raise CryptoError("could not parse public key: %s" % e)
    if not isinstance(pk, rsa.RSAPublicKey):
        raise CryptoError("public key is not an RSA key")
    return pk


def validate_signature(public_key, signature, data,
                       hash_algorithm=DEFAULT_HASH_ALGORITHM):
    """Verify an RSASSA-PKCS1-v1_5 signature.

    @param public_key: base64 public key material from a DKIM key record
    @param signature: base64 signature
    @param data: the signed text, str or bytes
    @param hash_algorithm: hash name, e.g. 'sha256'
    @return: True if the signature is valid, False otherwise
    @raise CryptoError: the signature is not base64, the key is unusable or
    the hash algorithm is not supported.
    """
    try:
        hasher = SIGNATURE_HASHES[hash_algorithm]
    except KeyError:
        raise CryptoError("unsupported hash algorithm: %s" % hash_algorithm)
    try:
        sig = base64.b64decode(re.sub(r'\s+', '', signature), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError("signature is not valid base64: %s" % e)
    pk = parse_public_key(public_key)
    if isinstance(data, str):
        data = data.encode('utf-8', 'surrogateescape')
    try:
        pk.verify(sig, data, padding.PKCS1v15(), hasher())
    except InvalidSignature:
        return False
    return True
