#
# Elementary operations of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from math import isqrt

from .flags import Compare, Status, Rounding, RND_MASK, PREC_INF, DIVREM_EUCLIDEAN
from .number import (
    NAN, Number, make_zero, make_infinity, make_finite, make_one, from_int,
)
from .rounding import (
    LF_EXACTLY_ZERO, LF_LESS_THAN_HALF, normalize, round_number, round_to_int,
    round_up, lost_fraction_of_division,
)


#
# Comparison
#

def compare(lhs, rhs):
    '''Return LHS vs RHS as one of the four comparison constants.  -0 and +0 compare
    equal.'''
    if lhs.is_nan() or rhs.is_nan():
        return Compare.UNORDERED

    if lhs.is_inf():
        if rhs.is_inf() and lhs.sign == rhs.sign:
            return Compare.EQUAL
        return Compare.LESS_THAN if lhs.sign else Compare.GREATER_THAN
    if rhs.is_inf():
        return Compare.GREATER_THAN if rhs.sign else Compare.LESS_THAN

    if not lhs.man and not rhs.man:
        return Compare.EQUAL

    # At least one non-zero.  If signs differ it's easy.  Also get the either-is-a-zero
    # case out the way as zeroes cannot have their exponents compared.
    if lhs.sign != rhs.sign or not rhs.man:
        return Compare.LESS_THAN if lhs.sign else Compare.GREATER_THAN
    if not lhs.man:
        return Compare.GREATER_THAN if rhs.sign else Compare.LESS_THAN

    # Two non-zero finite numbers with equal signs.
    expn_diff = lhs.expn - rhs.expn
    if expn_diff:
        if (expn_diff > 0) ^ lhs.sign:
            return Compare.GREATER_THAN
        return Compare.LESS_THAN

    # Exponents are the same.  We need to make their significands comparable.
    lhs_man, rhs_man = lhs.man, rhs.man
    length_diff = lhs_man.bit_length() - rhs_man.bit_length()
    if length_diff > 0:
        rhs_man <<= length_diff
    elif length_diff < 0:
        lhs_man <<= -length_diff

    if lhs_man == rhs_man:
        return Compare.EQUAL
    if (lhs_man > rhs_man) ^ lhs.sign:
        return Compare.GREATER_THAN
    return Compare.LESS_THAN


#
# Addition and subtraction
#

def add(lhs, rhs, prec, flags):
    '''Return the sum LHS + RHS and the status.'''
    return _add_sub(lhs, rhs, False, prec, flags)


def sub(lhs, rhs, prec, flags):
    '''Return the difference LHS - RHS and the status.'''
    return _add_sub(lhs, rhs, True, prec, flags)


def _add_sub(lhs, rhs, is_subtract, prec, flags):
    rounding = flags & RND_MASK
    if lhs.is_nan() or rhs.is_nan():
        return NAN, Status(0)

    rhs_sign = rhs.sign ^ is_subtract
    if lhs.is_inf():
        if rhs.is_inf() and lhs.sign != rhs_sign:
            # Subtraction of like-signed infinities is an invalid op
            return NAN, Status.INVALID_OP
        return lhs, Status(0)
    if rhs.is_inf():
        return make_infinity(rhs_sign), Status(0)

    if not rhs.man:
        if not lhs.man:
            # Adding two like-signed zeroes gives that zero.  Otherwise the sum is +0
            # unless rounding to minus infinity.
            if lhs.sign == rhs_sign:
                return lhs, Status(0)
            return make_zero(rounding == Rounding.ROUND_FLOOR), Status(0)
        return round_number(lhs, prec, flags)
    if not lhs.man:
        return round_number(Number(rhs_sign, rhs.exp, rhs.man), prec, flags)

    # Both are finite and non-zero.  Put the operand of greater magnitude first.
    big_sign, big_exp, big_man = lhs.sign, lhs.exp, lhs.man
    small_sign, small_exp, small_man = rhs_sign, rhs.exp, rhs.man
    if lhs.expn < rhs.expn:
        big_sign, big_exp, big_man, small_sign, small_exp, small_man = (
            small_sign, small_exp, small_man, big_sign, big_exp, big_man)

    # An operand far below the rounding position only matters as a sticky bit; replace it
    # by one so that huge exponent differences do not create huge shifts.
    if prec != PREC_INF:
        floor = min(big_exp, big_exp + big_man.bit_length() - prec) - 4
        if small_exp + small_man.bit_length() < floor:
            small_exp, small_man = floor - 1, 1

    exp = min(big_exp, small_exp)
    big_man <<= big_exp - exp
    small_man <<= small_exp - exp

    sign = big_sign
    if big_sign == small_sign:
        man = big_man + small_man
    else:
        man = big_man - small_man
        if man < 0:
            sign = not sign
            man = -man

    # If two numbers add exactly to zero, the result is +0 unless rounding to minus
    # infinity.
    if not man:
        return make_zero(rounding == Rounding.ROUND_FLOOR), Status(0)

    return normalize(sign, exp, man, prec, flags)


#
# Multiplication and division
#

def mul(lhs, rhs, prec, flags):
    '''Return the product LHS * RHS and the status.'''
    if lhs.is_nan() or rhs.is_nan():
        return NAN, Status(0)
    sign = lhs.sign ^ rhs.sign
    if lhs.is_inf() or rhs.is_inf():
        # infinity * zero -> invalid op
        if lhs.is_zero() or rhs.is_zero():
            return NAN, Status.INVALID_OP
        return make_infinity(sign), Status(0)
    if not (lhs.man and rhs.man):
        return make_zero(sign), Status(0)
    return normalize(sign, lhs.exp + rhs.exp, lhs.man * rhs.man, prec, flags)


def mul_2exp(value, e, prec, flags):
    '''Return value * 2^e rounded, and the status.'''
    if not value.man:
        return value, Status(0)
    return normalize(value.sign, value.exp + e, value.man, prec, flags)


def div(lhs, rhs, prec, flags):
    '''Return the quotient LHS / RHS and the status.'''
    if lhs.is_nan() or rhs.is_nan():
        return NAN, Status(0)
    sign = lhs.sign ^ rhs.sign

    if lhs.is_inf():
        # infinity / infinity is an invalid op
        if rhs.is_inf():
            return NAN, Status.INVALID_OP
        return make_infinity(sign), Status(0)
    if rhs.is_inf():
        return make_zero(sign), Status(0)
    if not rhs.man:
        # 0 / 0 -> NaN
        if not lhs.man:
            return NAN, Status.INVALID_OP
        return make_infinity(sign), Status.DIVIDE_ZERO
    if not lhs.man:
        return make_zero(sign), Status(0)

    if prec == PREC_INF:
        quot, rem = divmod(lhs.man, rhs.man)
        if rem:
            return NAN, Status.INVALID_OP
        return normalize(sign, lhs.exp - rhs.exp, quot, prec, flags)

    # Get a quotient of at least prec + 2 bits; the remainder becomes a sticky bit.
    lshift = max(0, prec + 2 + rhs.man.bit_length() - lhs.man.bit_length())
    quot, rem = divmod(lhs.man << lshift, rhs.man)
    return normalize(sign, lhs.exp - rhs.exp - lshift - 1, quot * 2 + bool(rem), prec,
                     flags)


#
# Roots
#

def sqrt(value, prec, flags):
    '''Return sqrt(value) and the status.  It has a positive sign for all operands >= 0,
    except that sqrt(-0) shall be -0.'''
    if value.is_nan():
        return NAN, Status(0)
    if value.is_inf():
        # -Inf -> invalid operation
        if value.sign:
            return NAN, Status.INVALID_OP
        return value, Status(0)
    if not value.man:
        return value, Status(0)
    if value.sign:
        return NAN, Status.INVALID_OP

    man, exp = value.man, value.exp
    if prec == PREC_INF:
        if exp & 1:
            man <<= 1
            exp -= 1
        root = isqrt(man)
        if root * root != man:
            return NAN, Status.INVALID_OP
        return normalize(False, exp // 2, root, prec, flags)

    # Make the exponent even and the root at least prec + 2 bits
    lshift = max(0, 2 * (prec + 2) - man.bit_length())
    lshift += (exp - lshift) & 1
    man <<= lshift
    exp -= lshift
    root = isqrt(man)
    return normalize(False, exp // 2 - 1, root * 2 + (root * root != man), prec, flags)


def sqrtrem(value):
    '''Return (root, remainder, status) where root is the integer square root of the integer
    part of value and remainder = value - root^2 exactly.  The status is INEXACT when the
    remainder is non-zero.'''
    zero = make_zero(False)
    if value.is_nan():
        return NAN, zero, Status(0)
    if value.sign and not value.is_zero():
        return NAN, zero, Status.INVALID_OP
    if not value.man:
        return value, zero, Status(0)

    integer, _lost = round_to_int(value, Rounding.ROUND_DOWN)
    root = isqrt(integer)
    remainder, _status = sub(value, from_int(root * root), PREC_INF, 0)
    status = Status(0) if remainder.is_zero() else Status.INEXACT
    return from_int(root), remainder, status


#
# Rounding operations
#

def rint(value, flags):
    '''Round to an integer with the flags' rounding mode.  INEXACT if the value changed.'''
    if not value.man:
        return value, Status(0)
    integer, lost_fraction = round_to_int(value, flags & RND_MASK)
    status = Status(0) if lost_fraction == LF_EXACTLY_ZERO else Status.INEXACT
    if not integer:
        return make_zero(value.sign), status
    result, range_status = normalize(value.sign, 0, integer, PREC_INF, flags)
    return result, status | range_status


def neg(value):
    return value.copy_negate(), Status(0)


def abs_(value):
    return value.copy_abs(), Status(0)


def sign(value):
    '''Return ±1 with the sign of value, or value itself if a NaN or zero.'''
    if value.is_nan() or value.is_zero():
        return value, Status(0)
    return make_one(value.sign), Status(0)


#
# Bitwise operations on the two's complement integer interpretation
#

def _to_integer(value):
    integer, _lost = round_to_int(value, Rounding.ROUND_DOWN)
    return -integer if value.sign else integer


def _logic(lhs, rhs, operation):
    if not (lhs.is_finite() and rhs.is_finite()):
        return NAN, Status.INVALID_OP
    return from_int(operation(_to_integer(lhs), _to_integer(rhs))), Status(0)


def logic_or(lhs, rhs):
    return _logic(lhs, rhs, int.__or__)


def logic_xor(lhs, rhs):
    return _logic(lhs, rhs, int.__xor__)


def logic_and(lhs, rhs):
    return _logic(lhs, rhs, int.__and__)


#
# Remainders
#

def divrem(lhs, rhs, prec, flags, rounding):
    '''Common implementation of the various remainder operations.

    The quotient lhs / rhs is rounded to an integer as rounding specifies; DIVREM_EUCLIDEAN
    chooses it so the remainder is non-negative.  Returns (quot, rem, status) where quot
    is exact and rem = lhs - quot * rhs is rounded to prec by flags (and so exact unless
    prec is too small to hold it).
    '''
    quot_sign = lhs.sign ^ rhs.sign     # Sign of the quotient

    if lhs.is_nan() or rhs.is_nan():
        return NAN, NAN, Status(0)
    # remainder (infinity, non-NaN) and remainder (finite, zero) are invalid operations
    if lhs.is_inf() or rhs.is_zero():
        return NAN, NAN, Status.INVALID_OP
    # remainder (finite, infinity) and remainder (zero, finite) are the LHS
    if rhs.is_inf() or lhs.is_zero():
        rem, status = round_number(lhs, prec, flags)
        return make_zero(quot_sign), rem, status

    if rounding == DIVREM_EUCLIDEAN:
        def rounds_up(lost_fraction, is_odd):
            return lhs.sign and lost_fraction != LF_EXACTLY_ZERO
    else:
        def rounds_up(lost_fraction, is_odd):
            return round_up(rounding, lost_fraction, quot_sign, is_odd)

    # |lhs| < |rhs| / 2 so the truncated quotient is zero; avoid shifting rhs to the
    # exponent of lhs
    if lhs.expn < rhs.expn - 1:
        if rounds_up(LF_LESS_THAN_HALF, False):
            rem, status = sub(lhs, Number(lhs.sign, rhs.exp, rhs.man), prec, flags)
            return make_finite(quot_sign, 0, 1), rem, status
        rem, status = round_number(lhs, prec, flags)
        return make_zero(quot_sign), rem, status

    exp = min(lhs.exp, rhs.exp)
    lhs_man = lhs.man << (lhs.exp - exp)
    rhs_man = rhs.man << (rhs.exp - exp)
    quot, rem_man = divmod(lhs_man, rhs_man)
    lost_fraction = lost_fraction_of_division(rem_man, rhs_man)

    # A remainder of zero has the sign of the LHS, and cannot round up.
    rem_sign = lhs.sign
    if rounds_up(lost_fraction, bool(quot & 1)):
        quot += 1
        rem_man = rhs_man - rem_man
        rem_sign = not rem_sign

    if rem_man:
        rem, status = normalize(rem_sign, exp, rem_man, prec, flags)
    else:
        rem, status = make_zero(lhs.sign), Status(0)
    return make_finite(quot_sign, 0, quot), rem, status


def rem(lhs, rhs, prec, flags, rounding):
    '''Return the remainder of lhs / rhs as described for divrem() and the status.'''
    _quot, remainder, status = divrem(lhs, rhs, prec, flags, rounding)
    return remainder, status
