#
# Opcode dispatch of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging
from enum import Enum

from . import arith, transcendental
from .flags import Status, Rounding, PREC_INF, check_prec
from .limits import limit_from_flags
from .number import NAN
from .rounding import round_number
from .value import Value


__all__ = ('Op', 'Arity', 'apply', 'apply2', 'DEFAULT_PREC')

logger = logging.getLogger(__name__)

# The precision of binary64
DEFAULT_PREC = 53


class Arity(Enum):
    NULLARY = 0
    UNARY = 1
    BINARY = 2
    # Only through apply2()
    TWO_RESULT = 3


class Op(Enum):
    '''The operations of apply() and apply2(), keyed by their selector character.'''

    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    OR = '|'
    XOR = '^'
    AND = '&'
    SQRT = 's'
    SQRTREM = 'm'
    ROUND = 'r'
    RINT = 'i'
    NEG = 'n'
    ABS = 'b'
    SIGN = 'g'
    CONST_LOG2 = '2'
    CONST_PI = '3'
    EXP = 'E'
    LOG = 'L'
    POW = 'P'
    COS = 'C'
    SIN = 'S'
    TAN = 'T'
    ATAN = '4'
    ATAN2 = '5'
    ASIN = '6'
    ACOS = '7'
    MIN_VALUE = 'z'
    MAX_VALUE = 'Z'
    EPSILON = 'y'
    REM = '%'
    DIVREM = 'd'

    @property
    def arity(self):
        return OP_ARITY[self]

    @classmethod
    def from_code(cls, op):
        '''Return the Op for a member, selector character or its code point, or None if
        there is no such operation.'''
        if isinstance(op, cls):
            return op
        if isinstance(op, int) and not isinstance(op, bool):
            if not 0 <= op < 0x110000:
                return None
            op = chr(op)
        if not isinstance(op, str):
            raise TypeError(f'opcode must be an Op, a character or a code point, '
                            f'not {type(op).__name__}')
        try:
            return cls(op)
        except ValueError:
            return None


OP_ARITY = {op: Arity.UNARY for op in Op}
OP_ARITY.update({
    Op.ADD: Arity.BINARY,
    Op.SUB: Arity.BINARY,
    Op.MUL: Arity.BINARY,
    Op.DIV: Arity.BINARY,
    Op.OR: Arity.BINARY,
    Op.XOR: Arity.BINARY,
    Op.AND: Arity.BINARY,
    Op.POW: Arity.BINARY,
    Op.ATAN2: Arity.BINARY,
    Op.CONST_LOG2: Arity.NULLARY,
    Op.CONST_PI: Arity.NULLARY,
    Op.MIN_VALUE: Arity.NULLARY,
    Op.MAX_VALUE: Arity.NULLARY,
    Op.EPSILON: Arity.NULLARY,
    Op.REM: Arity.TWO_RESULT,
    Op.DIVREM: Arity.TWO_RESULT,
})

# Operations that act on the result itself when no operand is given
IN_PLACE_OPS = frozenset((Op.ROUND, Op.RINT, Op.NEG, Op.ABS))

# The operations apply2() accepts
APPLY2_OPS = frozenset((Op.REM, Op.DIVREM, Op.SQRTREM))


def _limit(kind):
    def operation(context, a, b, prec, flags):
        if prec == PREC_INF:
            return NAN, Status.INVALID_OP
        return limit_from_flags(kind, prec, flags), Status(0)
    return operation


def _transcendental(function):
    def operation(context, a, b, prec, flags):
        return function(a, prec, flags, context)
    return operation


# Each takes (context, a, b, prec, flags) and returns a (number, status) pair
_OPERATIONS = {
    Op.ADD: lambda context, a, b, prec, flags: arith.add(a, b, prec, flags),
    Op.SUB: lambda context, a, b, prec, flags: arith.sub(a, b, prec, flags),
    Op.MUL: lambda context, a, b, prec, flags: arith.mul(a, b, prec, flags),
    Op.DIV: lambda context, a, b, prec, flags: arith.div(a, b, prec, flags),
    Op.OR: lambda context, a, b, prec, flags: arith.logic_or(a, b),
    Op.XOR: lambda context, a, b, prec, flags: arith.logic_xor(a, b),
    Op.AND: lambda context, a, b, prec, flags: arith.logic_and(a, b),
    Op.SQRT: lambda context, a, b, prec, flags: arith.sqrt(a, prec, flags),
    Op.ROUND: lambda context, a, b, prec, flags: round_number(a, prec, flags),
    Op.RINT: lambda context, a, b, prec, flags: arith.rint(a, flags),
    Op.NEG: lambda context, a, b, prec, flags: arith.neg(a),
    Op.ABS: lambda context, a, b, prec, flags: arith.abs_(a),
    Op.SIGN: lambda context, a, b, prec, flags: arith.sign(a),
    Op.CONST_LOG2: lambda context, a, b, prec, flags: transcendental.const_log2(
        prec, flags, context),
    Op.CONST_PI: lambda context, a, b, prec, flags: transcendental.const_pi(
        prec, flags, context),
    Op.EXP: _transcendental(transcendental.exp),
    Op.LOG: _transcendental(transcendental.log),
    Op.POW: lambda context, a, b, prec, flags: transcendental.pow_(
        a, b, prec, flags, context),
    Op.COS: _transcendental(transcendental.cos),
    Op.SIN: _transcendental(transcendental.sin),
    Op.TAN: _transcendental(transcendental.tan),
    Op.ATAN: _transcendental(transcendental.atan),
    Op.ATAN2: lambda context, a, b, prec, flags: transcendental.atan2(
        a, b, prec, flags, context),
    Op.ASIN: _transcendental(transcendental.asin),
    Op.ACOS: _transcendental(transcendental.acos),
    Op.MIN_VALUE: _limit('min'),
    Op.MAX_VALUE: _limit('max'),
    Op.EPSILON: _limit('epsilon'),
}


def _value(value, role, op):
    if value is None:
        raise TypeError(f'{op.name} requires operand {role}')
    if not isinstance(value, Value):
        raise TypeError(f'{op.name} operand {role} must be a Value, not '
                        f'{type(value).__name__}')
    return value


def _check_result(result):
    if not isinstance(result, Value):
        raise TypeError(f'result must be a Value, not {type(result).__name__}')


def _decode(op):
    code = Op.from_code(op)
    if code is None:
        logger.debug('unknown opcode %r', op)
    return code


def apply(op, result, a=None, b=None, prec=DEFAULT_PREC, flags=0):
    '''Perform the operation op, storing its result in result, and return the status.

    op is an Op, its selector character or the character's code point.  a and b are the
    operands the operation's arity requires; ROUND, RINT, NEG and ABS act on result itself
    when a is None.  For SQRTREM, b if given receives the remainder.  Operands may be the
    result.  An unknown opcode returns INVALID_OP and leaves the result unchanged.
    '''
    _check_result(result)
    code = _decode(op)
    if code is None or code.arity is Arity.TWO_RESULT:
        return Status.INVALID_OP
    check_prec(prec)
    flags = int(flags)

    if code.arity is Arity.NULLARY:
        x = y = None
    else:
        if a is None and code in IN_PLACE_OPS:
            a = result
        x = _value(a, 'a', code).number
        y = _value(b, 'b', code).number if code.arity is Arity.BINARY else None

    if code is Op.SQRTREM:
        root, remainder, status = arith.sqrtrem(x)
        status |= result.store(root)
        if b is not None:
            status |= _value(b, 'b', code).store(remainder)
        return status

    number, status = _OPERATIONS[code](result.context, x, y, prec, flags)
    return status | result.store(number)


def apply2(op, result, a, b, prec, flags, rounding, second_result=None):
    '''Perform a remainder operation and return the status.

    REM stores the remainder a - q * b in result where q is a / b rounded to an integer
    as rounding specifies (DIVREM_EUCLIDEAN gives a non-negative remainder).  DIVREM also
    stores the integer quotient q in second_result.  SQRTREM stores the integer square root
    of a in result and the remainder in second_result if given.  Other opcodes return
    INVALID_OP and leave the results unchanged.
    '''
    _check_result(result)
    code = _decode(op)
    if code not in APPLY2_OPS:
        if code is not None:
            logger.debug('opcode %s is not a two-result operation', code.name)
        return Status.INVALID_OP
    check_prec(prec)
    flags = int(flags)

    x = _value(a, 'a', code).number
    if code is Op.SQRTREM:
        root, remainder, status = arith.sqrtrem(x)
        status |= result.store(root)
        if second_result is not None:
            status |= _value(second_result, 'second_result', code).store(remainder)
        return status

    rounding = Rounding(rounding)
    y = _value(b, 'b', code).number
    if code is Op.REM:
        remainder, status = arith.rem(x, y, prec, flags, rounding)
        return status | result.store(remainder)

    _value(second_result, 'second_result', code)
    quotient, remainder, status = arith.divrem(x, y, prec, flags, rounding)
    status |= result.store(remainder)
    return status | second_result.store(quotient)
