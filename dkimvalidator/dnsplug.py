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

import dns.exception
import dns.rdatatype
import dns.resolver

from dkimvalidator.util import (
    DNSError,
    get_default_logger,
    )

__all__ = [
    'Resolver',
    'get_txt_records',
    ]


class Resolver(object):
    """Look up TXT records with dnspython.

    @param timeout: total time in seconds allowed for one lookup
    @param nameservers: optional list of nameserver addresses to use instead
    of the system configuration
    """

    def __init__(self, timeout=5, nameservers=None, logger=None):
        self.timeout = timeout
        try:
            self._resolver = dns.resolver.Resolver(
                configure=not nameservers)
        except dns.exception.DNSException as e:
            raise DNSError("could not configure resolver: %s" % e)
        if nameservers:
            self._resolver.nameservers = list(nameservers)
        self._resolver.lifetime = timeout
        if logger is None:
            logger = get_default_logger()
        self.logger = logger

    def get_text_records(self, name):
        """Return the TXT records published at a DNS name.

        Character strings within a record are concatenated.

        @return: list of str, empty when the name or record does not exist
        @raise DNSError: the lookup itself failed
        """
        try:
            answer = self._resolver.resolve(
                name, dns.rdatatype.TXT, raise_on_no_answer=False)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            self.logger.debug("no TXT record for %s" % name)
            return []
        except dns.exception.DNSException as e:
            raise DNSError("TXT lookup for %s failed: %s" % (name, e))
        records = []
        if answer.rrset is None:
            return records
        for rdata in answer.rrset:
            records.append(
                b"".join(rdata.strings).decode('utf-8', 'replace'))
        return records


def get_txt_records(name, timeout=5):
    """Return the TXT records for a DNS name using a default L{Resolver}."""
    return Resolver(timeout=timeout).get_text_records(name)
