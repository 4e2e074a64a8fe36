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

import json

__all__ = [
    'ValidationResult',
    'ValidationResults',
    ]


class ValidationResult(object):
    """The outcome of validating one DKIM signature.

    A signature is valid when at least one check passed and none failed.
    Warnings never affect validity.
    """

    def __init__(self, domain='', selector=''):
        self.domain = domain
        self.selector = selector
        self.fails = []
        self.warnings = []
        self.passes = []

    def __repr__(self):
        return '<ValidationResult %s/%s valid=%s>' % (
            self.domain, self.selector, self.is_valid())

    def add_fail(self, message):
        self.fails.append(message)

    def add_warning(self, message):
        self.warnings.append(message)

    def add_pass(self, message):
        self.passes.append(message)

    def get_domain(self):
        return self.domain

    def get_selector(self):
        return self.selector

    def get_fails(self):
        return list(self.fails)

    def get_warnings(self):
        return list(self.warnings)

    def get_passes(self):
        return list(self.passes)

    def is_valid(self):
        return not self.fails and len(self.passes) > 0

    def as_dict(self):
        return {
            'valid': self.is_valid(),
            'domain': self.domain,
            'selector': self.selector,
            'failures': self.get_fails(),
            'warnings': self.get_warnings(),
            'passes': self.get_passes(),
        }


class ValidationResults(object):
    """Results for every signature of a message.

    DKIM passes overall if *any* signature validates.
    """

    def __init__(self):
        self.valid = False
        self.results = []

    def add_result(self, result):
        if result.is_valid():
            self.valid = True
        self.results.append(result)

    def get_results(self):
        return list(self.results)

    def is_valid(self):
        """Has the message passed DKIM validation overall?

        False if no results have been added.
        """
        return self.valid

    def __bool__(self):
        return self.valid

    def __str__(self):
        out = ["DKIM validation results",
               "Overall status: %s" % ('pass' if self.valid else 'fail')]
        for number, result in enumerate(self.results, 1):
            out.append("Signature #%d" % number)
            out.append("Domain and selector: %s/%s" % (
                result.get_domain(), result.get_selector()))
            out.append("Validation result: %s" % (
                'pass' if result.is_valid() else 'fail'))
            for title, messages in (
                    ("Validation failures:", result.get_fails()),
                    ("Validation warnings:", result.get_warnings()),
                    ("Validation passes:", result.get_passes())):
                if messages:
                    out.append(title)
                    out.extend(messages)
        return "\n".join(out) + "\n"

    def as_dict(self):
        return {
            'valid': self.valid,
            'signatures': [r.as_dict() for r in self.results],
        }

    def as_json(self):
        return json.dumps(self.as_dict(), indent=4)
