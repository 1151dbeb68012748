#
# Exceptions for trapped status conditions of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from .flags import Status


__all__ = ('ArbFloatError', 'InvalidOperation', 'DivisionByZero', 'Overflow',
           'Underflow', 'Inexact', 'AllocationError', 'raise_for_status')


class ArbFloatError(ArithmeticError):
    '''All exceptions raised for trapped status conditions subclass from this.

    The engine itself never raises them; every operation returns a Status.  Callers that
    prefer exceptions pass the status through raise_for_status().

    ArbFloatError expects two arguments:

         def __init__(self, op_name, status):

    op_name names the operation, and status is the full status it returned.

    Exceptions derived from ArbFloatError must have a linear inheritance from it and
    through the first base class if an exception has multiple base classes.  See, for
    example, DivisionByZero.
    '''

    flag_to_raise = Status(0)

    @property
    def op_name(self):
        return self.args[0]

    @property
    def status(self):
        return self.args[1]

    def __str__(self):
        return f'{self.__class__.__name__} in {self.op_name}'


class InvalidOperation(ArbFloatError):
    '''The operation has no usefully definable result.  The result is a NaN.'''

    flag_to_raise = Status.INVALID_OP


class DivisionByZero(ArbFloatError, ZeroDivisionError):
    '''An operation on finite operands delivered an exact infinite result.'''

    flag_to_raise = Status.DIVIDE_ZERO


class Overflow(ArbFloatError):
    '''The rounded result exceeded the exponent range.  The result is either infinity, or
    the finite value of the greatest magnitude, depending on the rounding mode and sign.'''

    flag_to_raise = Status.OVERFLOW


class Underflow(ArbFloatError):
    '''A tiny non-zero result was inexact.'''

    flag_to_raise = Status.UNDERFLOW


class Inexact(ArbFloatError):
    '''The infinitely precise result could not be represented.'''

    flag_to_raise = Status.INEXACT


class AllocationError(ArbFloatError, MemoryError):
    '''The context's allocator could not satisfy a request.'''

    flag_to_raise = Status.MEM_ERROR


# In order of precedence when several trapped bits are set
_EXCEPTIONS = (AllocationError, InvalidOperation, DivisionByZero, Overflow, Underflow,
               Inexact)


def raise_for_status(status, traps, op_name):
    '''Raise the exception of the most important bit set in both status and traps.'''
    trapped = status & traps
    if trapped:
        for cls in _EXCEPTIONS:
            if trapped & cls.flag_to_raise:
                raise cls(op_name, Status(status))
