#
# Type limits of binary floating point formats
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from .flags import EXP_BITS_MIN, EXP_BITS_MAX, PREC_MIN, PREC_MAX, FLAG_SUBNORMAL, get_exp_bits
from .number import Number


__all__ = ('min_value', 'max_value', 'epsilon', 'limit_from_flags')


def _check(exp_bits, prec):
    if not EXP_BITS_MIN <= exp_bits <= EXP_BITS_MAX + 1:
        raise ValueError(f'exponent bits must be in [{EXP_BITS_MIN}, {EXP_BITS_MAX + 1}]')
    if not PREC_MIN <= prec <= PREC_MAX:
        raise ValueError(f'precision {prec} out of range')


def min_value(exp_bits, prec, subnormal=False):
    '''Return the smallest positive normal number of the format, or the smallest subnormal
    if subnormal is True.'''
    _check(exp_bits, prec)
    e = 2 - (1 << (exp_bits - 1))
    if subnormal:
        e -= prec - 1
    return Number(False, e, 1)


def max_value(exp_bits, prec):
    '''Return the largest finite number of the format.'''
    _check(exp_bits, prec)
    return Number(False, (1 << (exp_bits - 1)) - prec, (1 << prec) - 1)


def epsilon(prec):
    '''Return the difference between 1 and the next larger number of the precision.'''
    if not PREC_MIN <= prec <= PREC_MAX:
        raise ValueError(f'precision {prec} out of range')
    return Number(False, 1 - prec, 1)


def limit_from_flags(kind, prec, flags):
    '''Return the type limit kind ('min', 'max' or 'epsilon') of the format a flag bundle
    and precision describe.'''
    exp_bits = get_exp_bits(flags)
    if kind == 'min':
        return min_value(exp_bits, prec, bool(flags & FLAG_SUBNORMAL))
    if kind == 'max':
        return max_value(exp_bits, prec)
    return epsilon(prec)
