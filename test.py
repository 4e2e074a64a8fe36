import unittest
import doctest
import dkimvalidator
import dkimvalidator.canonicalization
import dkimvalidator.crypto
import dkimvalidator.header
from dkimvalidator.tests import test_suite

for module in (dkimvalidator, dkimvalidator.canonicalization,
               dkimvalidator.crypto, dkimvalidator.header):
    doctest.testmod(module)
unittest.TextTestRunner().run(test_suite())
