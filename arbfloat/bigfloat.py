#
# An immutable Python number type over the arbitrary-precision handle interface
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import sys
import threading

import attr

from . import api
from .arith import compare, rint
from .dispatch import Op, apply, apply2
from .errors import raise_for_status
from .flags import (
    Status, Compare, RND_MASK, ROUND_HALF_EVEN, ROUND_DOWN, ROUND_FLOOR, ROUND_CEILING,
    ROUND_HALF_UP, PREC_INF, ATOF_BIN_OCT, FTOA_FORMAT_FREE_MIN, FTOA_FORMAT_FRAC,
    check_prec, get_rounding,
)
from .number import Number, make_finite, from_int, from_float


__all__ = ('FloatEnv', 'BigFloat', 'get_env', 'set_env', 'local_env', 'LocalEnv',
           'DEFAULT_ENV')

# binary128
DEFAULT_ENV_PREC = 113
# Rounding, subnormal and exponent bits; the rest are operation-specific modifiers
_FORMAT_FLAGS_MASK = 0xffff
_HASH_MODULUS = sys.hash_info.modulus


@attr.s(slots=True, kw_only=True)
class FloatEnv:
    '''The environment BigFloat arithmetic is performed in.

    prec is the precision in bits of results, and flags a flag bundle (an int or a
    FlagBundle) giving the rounding mode and exponent range.  Status bits of each operation
    are accumulated in status; those also in traps raise the corresponding ArbFloatError.
    Values are created in context, or the default context if None.
    '''

    prec = attr.ib(default=DEFAULT_ENV_PREC)
    flags = attr.ib(default=0)
    traps = attr.ib(default=Status(0), converter=Status)
    context = attr.ib(default=None)
    status = attr.ib(default=Status(0), converter=Status)

    @prec.validator
    def _check_prec(self, attribute, value):
        check_prec(value)

    @property
    def rounding(self):
        return get_rounding(int(self.flags))

    def engine_flags(self, rounding=None):
        '''The flag bundle as an int, with the rounding mode replaced if one is given.'''
        flags = int(self.flags)
        if rounding is not None:
            flags = (flags & ~RND_MASK) | rounding
        return flags

    def get_context(self):
        return self.context or api.ensure_default_context()

    def record(self, status, op_name):
        '''Accumulate status, raising if a trapped bit is set.'''
        self.status |= status
        raise_for_status(status, self.traps, op_name)

    def clear_status(self):
        self.status = Status(0)

    def copy(self):
        return attr.evolve(self)


DEFAULT_ENV = FloatEnv()
tls = threading.local()


def get_env():
    try:
        return tls.env
    except AttributeError:
        tls.env = DEFAULT_ENV.copy()
        return tls.env


def set_env(env):
    '''Sets the current thread's environment to env (not a copy of it).'''
    tls.env = env


class LocalEnv:
    '''A context manager that sets the current thread's environment to a copy of env, with
    any keyword changes applied, on entry to the with-statement and restores the previous
    environment on exit.  If env is None a copy of the current environment is taken.
    '''

    def __init__(self, env=None, **changes):
        self.saved_env = None
        self.env_to_set = env
        self.changes = changes

    def __enter__(self):
        self.saved_env = get_env()
        env = attr.evolve(self.env_to_set or self.saved_env, **self.changes)
        set_env(env)
        return env

    def __exit__(self, etype, value, traceback):
        set_env(self.saved_env)


local_env = LocalEnv


class _Scratch:
    '''Values of a context that live for the duration of a with-statement.'''

    def __init__(self, context):
        self.context = context
        self.values = []
        self.status = Status(0)

    def new(self, number=None):
        value = self.context.create()
        self.values.append(value)
        if number is not None:
            self.status |= value.store(number)
        return value

    def __enter__(self):
        return self

    def __exit__(self, etype, value, traceback):
        for scratch in self.values:
            scratch.destroy()


def _exact_number(value):
    '''Return value as a Number without rounding, or None if it is not a number type.'''
    if isinstance(value, BigFloat):
        return value._number
    if isinstance(value, int):
        return from_int(value)
    if isinstance(value, float):
        return from_float(value)
    return None


def _apply(op, *operands, rounding=None):
    env = get_env()
    with _Scratch(env.get_context()) as scratch:
        result = scratch.new()
        values = [scratch.new(operand) for operand in operands]
        status = apply(op, result, *values, prec=env.prec, flags=env.engine_flags(rounding))
        status |= scratch.status
        number = result.number
    env.record(status, op.name.lower())
    return BigFloat._from_number(number)


def _apply2(op, lhs, rhs, rounding):
    '''Return a (quotient, remainder) pair; the quotient is None unless op is DIVREM.'''
    env = get_env()
    with _Scratch(env.get_context()) as scratch:
        remainder = scratch.new()
        quotient = scratch.new() if op is Op.DIVREM else None
        a, b = scratch.new(lhs), scratch.new(rhs)
        status = apply2(op, remainder, a, b, env.prec, env.engine_flags(), rounding, quotient)
        status |= scratch.status
        numbers = (None if quotient is None else quotient.number, remainder.number)
    env.record(status, op.name.lower())
    return tuple(None if number is None else BigFloat._from_number(number)
                 for number in numbers)


class BigFloat:
    '''An immutable arbitrary-precision binary floating point number.

    Construction rounds ints and floats to the precision of the current environment, and
    parses strings in it (radix 0 auto-detects a prefix).  Arithmetic accepts BigFloat,
    int and float operands exactly and rounds the result as the environment specifies.
    '''

    __slots__ = ('_number', )

    def __init__(self, value=0, radix=0):
        if isinstance(value, BigFloat):
            self._number = value._number
            return
        env = get_env()
        with _Scratch(env.get_context()) as scratch:
            result = scratch.new()
            if isinstance(value, str):
                flags = (env.engine_flags() & _FORMAT_FLAGS_MASK) | ATOF_BIN_OCT
                status = api.parse(result, value, radix, env.prec, flags)
            else:
                number = _exact_number(value)
                if number is None:
                    raise TypeError(f'cannot convert {type(value).__name__} to BigFloat')
                status = result.store(number)
                status |= apply(Op.ROUND, result, prec=env.prec, flags=env.engine_flags())
            number = result.number
        env.record(status, 'convert')
        self._number = number

    @classmethod
    def _from_number(cls, number):
        result = object.__new__(cls)
        result._number = number
        return result

    @property
    def number(self):
        return self._number

    @property
    def sign(self):
        return self._number.sign

    def is_finite(self):
        return self._number.is_finite()

    def is_nan(self):
        return self._number.is_nan()

    def is_zero(self):
        return self._number.is_zero()

    def is_inf(self):
        return self._number.is_inf()

    def as_integer_ratio(self):
        if not self._number.is_finite():
            raise ValueError('cannot convert non-finite number to integer ratio')
        n, d = self._number.as_integer_ratio()
        return n, d

    #
    # Constants and limits of the current environment
    #

    @classmethod
    def pi(cls):
        return _apply(Op.CONST_PI)

    @classmethod
    def log2(cls):
        '''The natural logarithm of 2.'''
        return _apply(Op.CONST_LOG2)

    @classmethod
    def max_value(cls):
        return _apply(Op.MAX_VALUE)

    @classmethod
    def min_value(cls):
        '''The smallest positive number; subnormal if the flags enable them.'''
        return _apply(Op.MIN_VALUE)

    @classmethod
    def epsilon(cls):
        return _apply(Op.EPSILON)

    #
    # Mathematical functions
    #

    def sqrt(self):
        return _apply(Op.SQRT, self._number)

    def exp(self):
        return _apply(Op.EXP, self._number)

    def log(self):
        return _apply(Op.LOG, self._number)

    def sin(self):
        return _apply(Op.SIN, self._number)

    def cos(self):
        return _apply(Op.COS, self._number)

    def tan(self):
        return _apply(Op.TAN, self._number)

    def asin(self):
        return _apply(Op.ASIN, self._number)

    def acos(self):
        return _apply(Op.ACOS, self._number)

    def atan(self):
        return _apply(Op.ATAN, self._number)

    def atan2(self, x):
        '''The arc tangent of self / x, using the signs of both to choose the quadrant.'''
        return _apply(Op.ATAN2, self._number, self._operand(x))

    def fmod(self, other):
        '''The remainder with the sign of self, as C's fmod().'''
        return _apply2(Op.REM, self._number, self._operand(other), ROUND_DOWN)[1]

    def remainder(self, other):
        '''The IEEE remainder: self - n * other with n the nearest integer to self / other.'''
        return _apply2(Op.REM, self._number, self._operand(other), ROUND_HALF_EVEN)[1]

    def floor(self):
        return _apply(Op.RINT, self._number, rounding=ROUND_FLOOR)

    def ceil(self):
        return _apply(Op.RINT, self._number, rounding=ROUND_CEILING)

    def trunc(self):
        return _apply(Op.RINT, self._number, rounding=ROUND_DOWN)

    def round(self):
        '''Round to an integral value, ties to even.'''
        return _apply(Op.RINT, self._number, rounding=ROUND_HALF_EVEN)

    #
    # Text conversion
    #

    def _format_prec(self):
        prec = get_env().prec
        if prec == PREC_INF:
            prec = 2
        return max(prec, self._number.man.bit_length())

    def to_string(self, radix=10, prec=None, flags=None):
        '''Return the number as text in radix.  By default the fewest digits that read back
        as the same number are given.  See ftoa() for the meaning of prec and flags.'''
        env = get_env()
        if flags is None:
            flags = FTOA_FORMAT_FREE_MIN | int(env.rounding)
        if prec is None:
            prec = self._format_prec()
        with _Scratch(env.get_context()) as scratch:
            value = scratch.new(self._number)
            with api.format_value(value, radix, prec, flags) as text:
                return text.text

    def to_fixed(self, n_digits, radix=10):
        '''Return the number with n_digits after the radix point, ties rounding away from
        zero.'''
        return self.to_string(radix, n_digits, FTOA_FORMAT_FRAC | ROUND_HALF_UP)

    def __str__(self):
        return self.to_string()

    def __repr__(self):
        return f"BigFloat('{self.to_string()}')"

    #
    # Conversion to Python numbers
    #

    def _to_integer(self, rounding):
        number = self._number
        if number.is_nan():
            raise ValueError('cannot convert NaN to integer')
        if number.is_inf():
            raise OverflowError('cannot convert infinity to integer')
        return rint(number, rounding)[0].as_integer_ratio()[0]

    def __int__(self):
        return self._to_integer(ROUND_DOWN)

    def __trunc__(self):
        return self._to_integer(ROUND_DOWN)

    def __floor__(self):
        return self._to_integer(ROUND_FLOOR)

    def __ceil__(self):
        return self._to_integer(ROUND_CEILING)

    def __round__(self, ndigits=None):
        '''If ndigits is None, round to an integer under ROUND_HALF_EVEN.  Otherwise round after
        ndigits binary digits with ROUND_HALF_EVEN and the result is a BigFloat.
        '''
        if ndigits is None:
            return self._to_integer(ROUND_HALF_EVEN)
        if not isinstance(ndigits, int):
            raise TypeError('ndigits must be an integer')
        number = self._number
        if not number.man or number.exp >= -ndigits:
            return self
        scaled, _status = rint(Number(number.sign, number.exp + ndigits, number.man),
                               ROUND_HALF_EVEN)
        if scaled.man:
            scaled = make_finite(scaled.sign, scaled.exp - ndigits, scaled.man)
        return BigFloat._from_number(scaled)

    def __float__(self):
        env = get_env()
        with _Scratch(env.get_context()) as scratch:
            value = scratch.new(self._number)
            result, status = value.get_float64(env.rounding)
        env.record(status | scratch.status, 'to_float')
        return result

    def __bool__(self):
        return not self._number.is_zero()

    def __hash__(self):
        '''Python hash.  Must hash equally to other types with the same value.'''
        number = self._number
        if number.is_nan():
            return 0
        if number.is_inf():
            return hash(float('-inf') if number.sign else float('inf'))
        # As for float, so equal ints, floats and fractions hash alike
        result = number.man % _HASH_MODULUS * pow(2, number.exp, _HASH_MODULUS) % _HASH_MODULUS
        if number.sign:
            result = -result
        return -2 if result == -1 else result

    #
    # Comparisons are exact
    #

    def _compare(self, other):
        other = _exact_number(other)
        if other is None:
            return None
        return compare(self._number, other)

    def __eq__(self, other):
        result = self._compare(other)
        if result is None:
            return NotImplemented
        return result == Compare.EQUAL

    def __ne__(self, other):
        result = self._compare(other)
        if result is None:
            return NotImplemented
        return result != Compare.EQUAL

    def __lt__(self, other):
        result = self._compare(other)
        if result is None:
            return NotImplemented
        return result == Compare.LESS_THAN

    def __le__(self, other):
        result = self._compare(other)
        if result is None:
            return NotImplemented
        return result in (Compare.EQUAL, Compare.LESS_THAN)

    def __ge__(self, other):
        result = self._compare(other)
        if result is None:
            return NotImplemented
        return result in (Compare.EQUAL, Compare.GREATER_THAN)

    def __gt__(self, other):
        result = self._compare(other)
        if result is None:
            return NotImplemented
        return result == Compare.GREATER_THAN

    #
    # Arithmetic
    #

    @staticmethod
    def _operand(value):
        number = _exact_number(value)
        if number is None:
            raise TypeError(f'expected a number, not {type(value).__name__}')
        return number

    def __neg__(self):
        return _apply(Op.NEG, self._number)

    def __pos__(self):
        return self

    def __abs__(self):
        return _apply(Op.ABS, self._number)

    def __add__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.ADD, self._number, other)

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.SUB, self._number, other)

    def __rsub__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.SUB, other, self._number)

    def __mul__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.MUL, self._number, other)

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.DIV, self._number, other)

    def __rtruediv__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.DIV, other, self._number)

    def __pow__(self, other, modulo=None):
        if modulo is not None:
            raise TypeError('three-argument pow() is not supported')
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.POW, self._number, other)

    def __rpow__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply(Op.POW, other, self._number)

    # Floor division and modulo follow Python: the remainder has the sign of the divisor

    def __mod__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply2(Op.REM, self._number, other, ROUND_FLOOR)[1]

    def __rmod__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply2(Op.REM, other, self._number, ROUND_FLOOR)[1]

    def __floordiv__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply2(Op.DIVREM, self._number, other, ROUND_FLOOR)[0]

    def __rfloordiv__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply2(Op.DIVREM, other, self._number, ROUND_FLOOR)[0]

    def __divmod__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply2(Op.DIVREM, self._number, other, ROUND_FLOOR)

    def __rdivmod__(self, other):
        other = _exact_number(other)
        if other is None:
            return NotImplemented
        return _apply2(Op.DIVREM, other, self._number, ROUND_FLOOR)
