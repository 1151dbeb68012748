#
# Immutable internal numbers of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from collections import namedtuple
from struct import Struct


# Exponent sentinels of special values
EXP_ZERO = -(1 << 63)
EXP_INF = (1 << 63) - 2
EXP_NAN = (1 << 63) - 1

pack_double = Struct('<d').pack
unpack_uint64 = Struct('<Q').unpack


class Number(namedtuple('Number', 'sign exp man')):
    '''An immutable arbitrary-precision binary floating point number.

    A finite non-zero number is (-1)^sign * man * 2^exp with man a positive odd integer.
    Zeroes, infinities and NaNs have a man of zero and a sentinel exp.  NaNs have a clear
    sign.

    Numbers are what the arithmetic routines compute on; Value handles store them in
    allocator-owned limbs between operations.
    '''

    __slots__ = ()

    def is_finite(self):
        return self.exp < EXP_INF

    def is_zero(self):
        return self.exp == EXP_ZERO

    def is_inf(self):
        return self.exp == EXP_INF

    def is_nan(self):
        return self.exp == EXP_NAN

    @property
    def expn(self):
        '''The exponent e such that the number is 0.1xxx * 2^e.  Sentinels for specials.'''
        if self.man:
            return self.exp + self.man.bit_length()
        return self.exp

    def copy_negate(self):
        if self.is_nan():
            return self
        return self._replace(sign=not self.sign)

    def copy_abs(self):
        return self._replace(sign=False)

    def as_integer_ratio(self):
        '''Return a pair (n, d) of integers with the number equal to n / d.'''
        if not self.man:
            if self.is_zero():
                return 0, 1
            raise ValueError('cannot convert non-finite number to integer ratio')
        n = -self.man if self.sign else self.man
        if self.exp >= 0:
            return n << self.exp, 1
        return n, 1 << -self.exp

    def __repr__(self):
        if self.is_nan():
            return 'Number(nan)'
        sign = '-' if self.sign else '+'
        if self.is_inf():
            return f'Number({sign}inf)'
        if self.is_zero():
            return f'Number({sign}0)'
        return f'Number({sign}{self.man:#x}p{self.exp})'


def make_zero(sign):
    return Number(bool(sign), EXP_ZERO, 0)


def make_infinity(sign):
    return Number(bool(sign), EXP_INF, 0)


NAN = Number(False, EXP_NAN, 0)


def make_nan():
    return NAN


def make_finite(sign, exp, man):
    '''Return the number (-1)^sign * man * 2^exp, canonicalizing man to be odd.'''
    if not man:
        return make_zero(sign)
    shift = (man & -man).bit_length() - 1
    return Number(bool(sign), exp + shift, man >> shift)


def make_one(sign):
    return Number(bool(sign), 0, 1)


def from_int(value):
    '''Return the number equal to the Python integer value exactly.'''
    return make_finite(value < 0, 0, abs(value))


def from_float(value):
    '''Return the number equal to the Python float value exactly.'''
    bits, = unpack_uint64(pack_double(value))
    sign = bool(bits >> 63)
    e_biased = (bits >> 52) & 0x7ff
    significand = bits & ((1 << 52) - 1)
    if e_biased == 0x7ff:
        return make_nan() if significand else make_infinity(sign)
    if e_biased:
        significand |= 1 << 52
    else:
        e_biased = 1
    return make_finite(sign, e_biased - 1075, significand)


def to_fixed(number, wp):
    '''Return the finite number as an integer scaled by 2^wp, truncated towards zero.'''
    if not number.man:
        return 0
    shift = number.exp + wp
    value = number.man << shift if shift >= 0 else number.man >> -shift
    return -value if number.sign else value
