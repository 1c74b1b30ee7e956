'''
Errors raised by the eigenvalue-system controller.
'''

from enum import Enum
from typing import Optional

class EigenSystemErrorMsg(Enum):
    '''
    Enumeration class for eigenvalue-system error messages.
    '''
    DUPLICATE_MATRIX        = 301
    MATRIX_NOT_FOUND        = 302
    NOT_INITIALIZED         = 303
    NOT_ASSEMBLED           = 304
    INDEX_OUT_OF_RANGE      = 305
    INCONSISTENT_STORAGE    = 306

    def __str__(self):
        return self.name.replace('_', ' ').title()

    def __repr__(self):
        return f"<{self.__class__.__name__}.{self.name}: '{str(self)}'>"

class EigenSystemError(Exception):
    '''
    Raised on caller errors of the eigenvalue system: registry misuse,
    lifecycle violations and eigenpair indices past the converged count.
    '''
    def __init__(self, code: EigenSystemErrorMsg, message: Optional[str] = None):
        self.code       = code
        self.message    = message if message else str(code)
        super().__init__(self.message)

    def __str__(self):
        return f"[EigenSystemError {self.code.name} ({self.code.value})]: {self.message}"

    def __repr__(self):
        return self.__str__()
