#
# Correct rounding of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from .flags import (
    Status, Rounding, RND_MASK, FLAG_SUBNORMAL, PREC_INF, exponent_range,
)
from .number import make_finite, make_infinity, make_zero, Number


# When precision is lost during a calculation these indicate what fraction of the LSB the
# lost bits represented.  It essentially combines the roles of 'guard' and 'sticky' bits.
LF_EXACTLY_ZERO = 0           # 000000
LF_LESS_THAN_HALF = 1         # 0xxxxx  x's not all zero
LF_EXACTLY_HALF = 2           # 100000
LF_MORE_THAN_HALF = 3         # 1xxxxx  x's not all zero


def lost_bits_from_rshift(significand, bits):
    '''Return what the lost bits would be were the significand shifted right the given number
    of bits (negative is a left shift).
    '''
    if bits <= 0:
        return LF_EXACTLY_ZERO
    # Prevent over-large shifts consuming memory
    bits = min(bits, significand.bit_length() + 2)
    bit_mask = 1 << (bits - 1)
    first_bit = bool(significand & bit_mask)
    second_bit = bool(significand & (bit_mask - 1))
    return first_bit * 2 + second_bit


def shift_right(significand, bits):
    '''Return the significand shifted right a given number of bits, and the fraction that is
    lost doing so.  Non-positive shifts leave the significand unchanged.
    '''
    if bits <= 0:
        return significand, LF_EXACTLY_ZERO
    return significand >> bits, lost_bits_from_rshift(significand, bits)


def lost_fraction_of_division(remainder, divisor):
    '''Return the lost fraction of a quotient whose division left remainder.'''
    if remainder == 0:
        return LF_EXACTLY_ZERO
    twice = remainder * 2
    if twice < divisor:
        return LF_LESS_THAN_HALF
    if twice == divisor:
        return LF_EXACTLY_HALF
    return LF_MORE_THAN_HALF


def round_up(rounding, lost_fraction, sign, is_odd):
    '''Return True if, when an operation is inexact, the result should be rounded up (i.e.,
    away from zero by incrementing the significand).

    sign is the sign of the number, and is_odd indicates if the LSB of the new
    significand is set, which is needed for ties-to-even rounding.
    '''
    if lost_fraction == LF_EXACTLY_ZERO:
        return False

    if rounding == Rounding.ROUND_HALF_EVEN:
        if lost_fraction == LF_EXACTLY_HALF:
            return is_odd
        return lost_fraction == LF_MORE_THAN_HALF
    if rounding == Rounding.ROUND_CEILING:
        return not sign
    if rounding == Rounding.ROUND_FLOOR:
        return sign
    if rounding == Rounding.ROUND_UP:
        return True
    if rounding == Rounding.ROUND_HALF_UP:
        return lost_fraction != LF_LESS_THAN_HALF
    # ROUND_DOWN and ROUND_FAITHFUL
    return False


def make_largest_finite(sign, prec, flags):
    '''Return the finite number of maximal magnitude for the precision and exponent range.'''
    e_max = exponent_range(flags)[1]
    return Number(bool(sign), e_max - prec, (1 << prec) - 1)


def make_smallest_normal(sign, flags):
    e_min = exponent_range(flags)[0]
    return Number(bool(sign), e_min - 1, 1)


def make_overflow_value(rounding, sign, prec, flags):
    '''Return the value to deliver when an overflow occurs.'''
    if prec != PREC_INF and not round_up(rounding, LF_MORE_THAN_HALF, sign, False):
        return make_largest_finite(sign, prec, flags)
    return make_infinity(sign)


def make_underflow_value(rounding, sign, prec, flags):
    '''Return the value to deliver when a non-zero result is too small to represent.'''
    if round_up(rounding, LF_LESS_THAN_HALF, sign, False):
        e_min = exponent_range(flags)[0]
        if flags & FLAG_SUBNORMAL and prec != PREC_INF:
            return Number(bool(sign), e_min - prec, 1)
        return make_smallest_normal(sign, flags)
    return make_zero(sign)


def normalize(sign, exp, man, prec, flags):
    '''Return a (number, status) pair, the number being the correctly-rounded (by flags)
    value of the infinitely precise result

       ± 2^exp * man

    man is a non-negative integer; callers fold any bits they have discarded into a
    sticky low bit so the rounding here sees the correct lost fraction.
    '''
    if man == 0:
        return make_zero(sign), Status(0)

    rounding = flags & RND_MASK
    e_min, e_max = exponent_range(flags)
    size = man.bit_length()
    status = Status(0)

    if prec == PREC_INF:
        rshift = 0
    else:
        # Never keep more than prec bits.  Subnormals keep only the bits at or above the
        # weight of the smallest subnormal.
        rshift = size - prec
        if flags & FLAG_SUBNORMAL:
            rshift = max(rshift, e_min - prec - exp)

    man, lost_fraction = shift_right(man, rshift)
    if rshift > 0:
        exp += rshift

    if lost_fraction != LF_EXACTLY_ZERO:
        status |= Status.INEXACT
        if round_up(rounding, lost_fraction, sign, bool(man & 1)):
            man += 1

    if man == 0:
        # Only possible with subnormals: everything shifted out and rounded down
        return make_zero(sign), Status.UNDERFLOW | Status.INEXACT

    expn = exp + man.bit_length()
    if expn > e_max:
        return (make_overflow_value(rounding, sign, prec, flags),
                status | Status.OVERFLOW | Status.INEXACT)

    if expn < e_min:
        if flags & FLAG_SUBNORMAL:
            if status & Status.INEXACT:
                status |= Status.UNDERFLOW
        else:
            return (make_underflow_value(rounding, sign, prec, flags),
                    Status.UNDERFLOW | Status.INEXACT)

    return make_finite(sign, exp, man), status


def round_number(number, prec, flags):
    '''Round a number of any precision to prec bits.  Specials are returned unchanged.'''
    if not number.man:
        return number, Status(0)
    return normalize(number.sign, number.exp, number.man, prec, flags)


def round_to_int(number, rounding):
    '''Round a finite number to an integer as specified.

    Return a (abs_result, lost_fraction) pair.  The caller needs to apply the sign.
    '''
    if not number.man:
        return 0, LF_EXACTLY_ZERO
    if number.exp >= 0:
        return number.man << number.exp, LF_EXACTLY_ZERO
    value, lost_fraction = shift_right(number.man, -number.exp)
    if round_up(rounding, lost_fraction, number.sign, bool(value & 1)):
        value += 1
    return value, lost_fraction
