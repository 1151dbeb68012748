#
# Flag bundles, rounding modes and status codes of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from enum import IntEnum, IntFlag
from math import ceil

import attr


__all__ = ('Rounding', 'Status', 'Compare', 'FlagBundle',
           'ROUND_HALF_EVEN', 'ROUND_DOWN', 'ROUND_FLOOR', 'ROUND_CEILING',
           'ROUND_HALF_UP', 'ROUND_UP', 'ROUND_FAITHFUL', 'DIVREM_EUCLIDEAN',
           'RND_MASK', 'FLAG_SUBNORMAL', 'EXP_BITS_SHIFT', 'EXP_BITS_MASK',
           'EXP_BITS_MIN', 'EXP_BITS_MAX', 'PREC_MIN', 'PREC_MAX', 'PREC_INF',
           'RADIX_MAX', 'POW_JS_QUIRKS',
           'ATOF_NO_HEX', 'ATOF_BIN_OCT', 'ATOF_NO_NAN_INF',
           'FTOA_FORMAT_MASK', 'FTOA_FORMAT_FIXED', 'FTOA_FORMAT_FRAC', 'FTOA_FORMAT_FREE',
           'FTOA_FORMAT_FREE_MIN', 'FTOA_FORCE_EXP', 'FTOA_ADD_PREFIX', 'FTOA_JS_QUIRKS',
           'set_exp_bits', 'get_exp_bits', 'get_rounding', 'exponent_range',
           'check_prec', 'digits_to_bits')


# Rounding modes.  The values are those stored in the low bits of a flag bundle.
class Rounding(IntEnum):
    ROUND_HALF_EVEN = 0     # To nearest with ties towards even
    ROUND_DOWN = 1          # Towards zero
    ROUND_FLOOR = 2         # Towards -infinity
    ROUND_CEILING = 3       # Towards +infinity
    ROUND_HALF_UP = 4       # To nearest with ties away from zero
    ROUND_UP = 5            # Away from zero
    ROUND_FAITHFUL = 6      # Either neighbour; this implementation truncates


ROUND_HALF_EVEN = Rounding.ROUND_HALF_EVEN
ROUND_DOWN = Rounding.ROUND_DOWN
ROUND_FLOOR = Rounding.ROUND_FLOOR
ROUND_CEILING = Rounding.ROUND_CEILING
ROUND_HALF_UP = Rounding.ROUND_HALF_UP
ROUND_UP = Rounding.ROUND_UP
ROUND_FAITHFUL = Rounding.ROUND_FAITHFUL

# For the remainder operations, the faithful selector requests a Euclidean remainder
DIVREM_EUCLIDEAN = Rounding.ROUND_FAITHFUL


# Operation status bits.  MEM_ERROR is not a numeric condition.
class Status(IntFlag):
    INVALID_OP  = 0x01
    DIVIDE_ZERO = 0x02
    OVERFLOW    = 0x04
    UNDERFLOW   = 0x08
    INEXACT     = 0x10
    MEM_ERROR   = 0x20

    NUMERIC = 0x1f

    def numeric(self):
        '''Return just the numeric condition bits.'''
        return self & Status.NUMERIC


# Four-way result of the compare() operation.
class Compare(IntEnum):
    LESS_THAN = 0
    EQUAL = 1
    GREATER_THAN = 2
    UNORDERED = 3


# Flag bundle layout
RND_MASK = 0x07
FLAG_SUBNORMAL = 1 << 3
EXP_BITS_SHIFT = 5
EXP_BITS_MASK = 0x3f
EXP_BITS_MIN = 3
EXP_BITS_MAX = 61

PREC_MIN = 2
PREC_MAX = (1 << 62) - 2
PREC_INF = PREC_MAX + 1

RADIX_MAX = 36

# Operation-specific modifiers.  These share bits so only mean something to the
# operation they are passed to.
POW_JS_QUIRKS = 1 << 16

ATOF_NO_HEX = 1 << 16
ATOF_BIN_OCT = 1 << 17
ATOF_NO_NAN_INF = 1 << 18

FTOA_FORMAT_MASK = 3 << 16
FTOA_FORMAT_FIXED = 0 << 16
FTOA_FORMAT_FRAC = 1 << 16
FTOA_FORMAT_FREE = 2 << 16
FTOA_FORMAT_FREE_MIN = 3 << 16
FTOA_FORCE_EXP = 1 << 20
FTOA_ADD_PREFIX = 1 << 21
FTOA_JS_QUIRKS = 1 << 22


def set_exp_bits(n):
    '''Return the flag bundle bits selecting an exponent field of n bits.'''
    if not EXP_BITS_MIN <= n <= EXP_BITS_MAX + 1:
        raise ValueError(f'exponent bits must be in [{EXP_BITS_MIN}, {EXP_BITS_MAX + 1}]')
    return ((EXP_BITS_MAX - n) & EXP_BITS_MASK) << EXP_BITS_SHIFT


def get_exp_bits(flags):
    '''Return the number of exponent bits selected by a flag bundle.'''
    e = (flags >> EXP_BITS_SHIFT) & EXP_BITS_MASK
    if e == EXP_BITS_MASK:
        return EXP_BITS_MAX + 1
    return EXP_BITS_MAX - e


def get_rounding(flags):
    return Rounding(flags & RND_MASK)


def exponent_range(flags):
    '''Return the (e_min, e_max) pair for values of the form 0.1xxx * 2^e.

    Normal numbers have e_min <= e <= e_max.  The smallest subnormal, when enabled, is
    2^(e_min - precision).
    '''
    e_range = 1 << (get_exp_bits(flags) - 1)
    return 3 - e_range, e_range


def check_prec(prec):
    '''Raise if prec is not a valid precision.'''
    if not isinstance(prec, int):
        raise TypeError('precision must be an integer')
    if prec != PREC_INF and not PREC_MIN <= prec <= PREC_MAX:
        raise ValueError(f'precision {prec} out of range')


def digits_to_bits(n_digits):
    '''Return the number of bits needed for n_digits decimal digits.'''
    return ceil(n_digits * 3.32192809488736234786)


@attr.s(slots=True, frozen=True, kw_only=True)
class FlagBundle:
    '''A decoded flag bundle.  int() of it gives the bit-set the engine takes.'''

    rounding = attr.ib(default=ROUND_HALF_EVEN, converter=Rounding)
    # None means the maximal exponent range
    exp_bits = attr.ib(default=None)
    subnormal = attr.ib(default=False)
    # Operation-specific modifier bits (parse, format and pow flags)
    extra = attr.ib(default=0)

    @exp_bits.validator
    def _check_exp_bits(self, attribute, value):
        if value is not None:
            set_exp_bits(value)

    @classmethod
    def from_flags(cls, flags):
        e = (flags >> EXP_BITS_SHIFT) & EXP_BITS_MASK
        return cls(rounding=flags & RND_MASK,
                   exp_bits=None if e == 0 else get_exp_bits(flags),
                   subnormal=bool(flags & FLAG_SUBNORMAL),
                   extra=flags & ~((EXP_BITS_MASK << EXP_BITS_SHIFT) | FLAG_SUBNORMAL
                                   | RND_MASK))

    def __int__(self):
        flags = int(self.rounding) | self.extra
        if self.exp_bits is not None:
            flags |= set_exp_bits(self.exp_bits)
        if self.subnormal:
            flags |= FLAG_SUBNORMAL
        return flags

    def replace(self, **kwargs):
        return attr.evolve(self, **kwargs)
