#
# Correctly-rounded transcendental functions of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#
# Every function evaluates an approximation with a rigorous error bound in fixed point and
# checks both ends of the error interval round to the same number; if not, it tries again
# with more precision.  Arguments for which the result is exactly representable are
# handled before the loop, as they would never be decided by it.
#

import logging
from math import isqrt

from .arith import compare, div, mul, sub
from .flags import Compare, Status, RND_MASK, PREC_INF, POW_JS_QUIRKS, exponent_range
from .number import (
    NAN, Number, make_zero, make_infinity, make_finite, make_one, to_fixed,
)
from .rounding import normalize, make_overflow_value, make_underflow_value


__all__ = ('const_pi', 'const_log2', 'exp', 'log', 'pow_', 'sin', 'cos', 'tan',
           'atan', 'atan2', 'asin', 'acos')

logger = logging.getLogger(__name__)

# Extra bits of the first attempt
GUARD_BITS = 16
_ONE = make_one(False)


def _ziv(approximate, prec, flags, name):
    '''Return the correctly-rounded result and status.

    approximate(wp) returns (sign, man, exp, err) such that the exact result, which must
    not be exactly representable, is within err units of man * 2^exp; man should have
    roughly wp significant bits.
    '''
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP

    wp = prec + GUARD_BITS
    wp_limit = 64 * prec + 65536
    while True:
        sign, man, exp, err = approximate(wp)
        if man > err:
            low = normalize(sign, exp, man - err, prec, flags)[0]
            high = normalize(sign, exp, man + err, prec, flags)[0]
            if low == high or wp > wp_limit:
                if low != high:
                    logger.warning('%s: giving up at %d bits', name, wp)
                # The exact result is strictly inside the interval so inexact
                return normalize(sign, exp - 1, man * 2 + 1, prec, flags)
        wp += max(32, wp // 2)
        logger.debug('%s: retrying with %d bits', name, wp)


def _perturb(value, toward_zero, prec, flags):
    '''Round a number infinitesimally smaller or larger in magnitude than the finite non-zero
    value.  The perturbation must be far below both prec and the bits of value.'''
    size = value.man.bit_length()
    shift = max(prec, size) + 10 - size
    man = (value.man << shift) + (-1 if toward_zero else 1)
    return normalize(value.sign, value.exp - shift, man, prec, flags)


def _guard(wp):
    return wp.bit_length() + 8


#
# Constants
#

def _arccot(n, wp, hyperbolic):
    '''Return atan(1/n), or atanh(1/n) if hyperbolic, scaled by 2^wp.  The error is less
    than twice the number of terms.'''
    power = (1 << wp) // n
    n2 = n * n
    total = power
    k = 1
    sign = 1
    while power:
        power //= n2
        k += 2
        if not hyperbolic:
            sign = -sign
        total += sign * (power // k)
    return total


def pi_fixed(wp):
    # Machin's formula
    gp = wp + _guard(wp)
    return (16 * _arccot(5, gp, False) - 4 * _arccot(239, gp, False)) >> (gp - wp)


def log2_fixed(wp):
    gp = wp + _guard(wp)
    value = (18 * _arccot(26, gp, True) - 2 * _arccot(4801, gp, True)
             + 8 * _arccot(8749, gp, True))
    return value >> (gp - wp)


def _pi(wp, context):
    '''Return pi scaled by 2^wp, within 2 units.'''
    if context is None:
        return pi_fixed(wp)
    return context.constant('pi', wp)


def _ln2(wp, context):
    '''Return log(2) scaled by 2^wp, within 2 units.'''
    if context is None:
        return log2_fixed(wp)
    return context.constant('log2', wp)


def _pi_multiple(numerator, denominator, sign, prec, flags, context):
    '''Return sign * pi * numerator / denominator correctly rounded.'''
    def approximate(wp):
        value = _pi(wp, context) * numerator // denominator
        return sign, value, -wp, 3 * numerator
    return _ziv(approximate, prec, flags, 'pi')


def const_pi(prec, flags, context=None):
    return _pi_multiple(1, 1, False, prec, flags, context)


def const_log2(prec, flags, context=None):
    def approximate(wp):
        return False, _ln2(wp, context), -wp, 2
    return _ziv(approximate, prec, flags, 'log2')


#
# Exponential and logarithm
#

def _exp_fixed(r, wp):
    '''Return exp(r) scaled by 2^wp, within 2 units, for 0 <= r < 2^wp scaled by 2^wp.'''
    # Halve the argument s times, sum the Taylor series, then square s times
    s = isqrt(wp) // 2
    gp = wp + s + _guard(wp)
    r = (r << (gp - wp)) >> s
    one = 1 << gp
    total = term = one
    k = 1
    while term:
        term = (term * r >> gp) // k
        total += term
        k += 1
    for _ in range(s):
        total = total * total >> gp
    return total >> (gp - wp)


def _exp_of_fixed(t, gp, context):
    '''Return (man, exp, err): exp(t / 2^gp) is within err units of man * 2^exp, given t
    exact.  man has about gp bits.'''
    # t = k log(2) + r with 0 <= r < log(2)
    extra = (abs(t) >> gp).bit_length() + 4
    ln2 = _ln2(gp + extra, context)
    k = (t << extra) // ln2
    r = ((t << extra) - k * ln2) >> extra
    return _exp_fixed(r, gp), k - gp, 6


def _log_fixed(x, gp, context):
    '''Return (L, err): log(x) for positive finite x is within err units of L / 2^gp.'''
    ip = gp + _guard(gp)
    one = 1 << ip

    # x = m * 2^e with 1/sqrt(2) <= m < sqrt(2)
    e = x.expn
    m = to_fixed(Number(False, x.exp - e, x.man), ip)
    if m * m < 1 << (2 * ip - 1):
        e -= 1
        m = to_fixed(Number(False, x.exp - e, x.man), ip)

    # log(m) = 2 atanh(z) with z = (m - 1) / (m + 1), |z| < 0.172
    z = (abs(m - one) << ip) // (m + one)
    z2 = z * z >> ip
    total = power = z
    k = 1
    while power:
        power = power * z2 >> ip
        k += 2
        total += power // k
    total *= 2
    if m < one:
        total = -total

    if e:
        extra = abs(e).bit_length()
        total += (e * _ln2(ip + extra, context)) >> extra
    return total >> (ip - gp), 2


def exp(x, prec, flags, context=None):
    '''Return exp(x) correctly rounded, and the status.'''
    if x.is_nan():
        return NAN, Status(0)
    if x.is_inf():
        return (make_zero(False) if x.sign else x), Status(0)
    if x.is_zero():
        return normalize(False, 0, 1, prec, flags)
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP

    e_min, e_max = exponent_range(flags)
    rounding = flags & RND_MASK
    if x.expn - 1 > max(e_max, prec - e_min).bit_length() + 1:
        if x.sign:
            return make_underflow_value(rounding, False, prec, flags), \
                Status.UNDERFLOW | Status.INEXACT
        return make_overflow_value(rounding, False, prec, flags), \
            Status.OVERFLOW | Status.INEXACT
    if x.expn < -(prec + 8):
        return _perturb(_ONE, x.sign, prec, flags)

    def approximate(wp):
        gp = wp + 4
        return (False, ) + _exp_of_fixed(to_fixed(x, gp), gp, context)[:2] + (8, )

    return _ziv(approximate, prec, flags, 'exp')


def log(x, prec, flags, context=None):
    '''Return the natural logarithm of x correctly rounded, and the status.'''
    if x.is_nan():
        return NAN, Status(0)
    if x.is_zero():
        return make_infinity(True), Status.DIVIDE_ZERO
    if x.sign:
        return NAN, Status.INVALID_OP
    if x.is_inf():
        return x, Status(0)
    if x == _ONE:
        return make_zero(False), Status(0)
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP

    # Near 1 the result is about x - 1, so more bits are needed
    near_one = 0
    if x.expn in (0, 1):
        near_one = max(0, -sub(x, _ONE, PREC_INF, 0)[0].expn)

    def approximate(wp):
        gp = wp + near_one
        value, err = _log_fixed(x, gp, context)
        return value < 0, abs(value), -gp, err

    return _ziv(approximate, prec, flags, 'log')


#
# Power
#

def _is_integer(value):
    return value.exp >= 0


def _is_odd_integer(value):
    return value.exp == 0


def _integer_power(x, n, prec, flags):
    '''Return x^n, n a non-zero integer, correctly rounded with its status, or None if it is
    too expensive to compute exactly.  A None return is only possible when the result is
    neither representable nor a rounding boundary.'''
    if x.man == 1:
        return normalize(x.sign, x.exp * n, 1, prec, flags)
    bits = x.man.bit_length() * abs(n)
    if prec != PREC_INF and bits > 2 * prec + 128:
        return None
    if prec == PREC_INF and bits > (1 << 24):
        return NAN, Status.INVALID_OP
    power = make_finite(x.sign, x.exp * abs(n), x.man ** abs(n))
    if n > 0:
        return normalize(power.sign, power.exp, power.man, prec, flags)
    return div(_ONE, power, prec, flags)


def _exact_root(x, q):
    '''Return the 2^q-th root of the positive number x if it is exactly representable,
    otherwise None.'''
    if x.exp and (q > x.exp.bit_length() or x.exp % (1 << q)):
        return None
    man = x.man
    for _ in range(q):
        if man == 1:
            break
        root = isqrt(man)
        if root * root != man:
            return None
        man = root
    else:
        return Number(False, x.exp >> q, man)
    # The mantissa reached one early; the rest of the roots are of a power of two
    return Number(False, x.exp >> q, 1)


def pow_(x, y, prec, flags, context=None):
    '''Return x^y correctly rounded, and the status.  Special values follow IEEE 754 pow()
    except that with POW_JS_QUIRKS 1^±inf, 1^NaN and (-1)^±inf are NaN.'''
    js_quirks = flags & POW_JS_QUIRKS

    if y.is_zero():
        return normalize(False, 0, 1, prec, flags)
    if x == _ONE:
        if js_quirks and not y.is_finite():
            return NAN, Status(0)
        return x, Status(0)
    if x.is_nan() or y.is_nan():
        return NAN, Status(0)

    if y.is_inf():
        if x.man == 1 and x.exp == 0:
            # x is -1
            return (NAN if js_quirks else _ONE), Status(0)
        if compare(x.copy_abs(), _ONE) == Compare.LESS_THAN:
            return (make_infinity(False) if y.sign else make_zero(False)), Status(0)
        return (make_zero(False) if y.sign else make_infinity(False)), Status(0)

    odd = _is_odd_integer(y)
    if x.is_inf():
        sign = x.sign and odd
        if y.sign:
            return make_zero(sign), Status(0)
        return make_infinity(sign), Status(0)
    if x.is_zero():
        sign = x.sign and odd
        if y.sign:
            return make_infinity(sign), Status.DIVIDE_ZERO
        return make_zero(sign), Status(0)

    if x.sign and not _is_integer(y):
        return NAN, Status.INVALID_OP

    sign = x.sign and odd
    ax = x.copy_abs()

    if ax == _ONE:
        return make_one(sign), Status(0)

    # Exactly representable results and rounding boundaries.  Integer powers beyond 2^256
    # certainly overflow or underflow, which the estimate below detects.
    result = None
    if _is_integer(y):
        if y.expn <= 256:
            n = y.man << y.exp
            result = _integer_power(Number(sign, ax.exp, ax.man), -n if y.sign else n,
                                    prec, flags)
    else:
        root = _exact_root(ax, -y.exp)
        if root is not None:
            result = _integer_power(Number(sign, root.exp, root.man),
                                    -y.man if y.sign else y.man, prec, flags)
    if result is not None:
        return result
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP

    # Estimate log(result) to catch overflow and underflow early
    estimate = mul(y, log(ax, 64, 0, context)[0], 64, 0)[0]
    e_min, e_max = exponent_range(flags)
    rounding = flags & RND_MASK
    if estimate.expn > max(e_max, prec - e_min).bit_length() + 2:
        if estimate.sign:
            return make_underflow_value(rounding, sign, prec, flags), \
                Status.UNDERFLOW | Status.INEXACT
        return make_overflow_value(rounding, sign, prec, flags), \
            Status.OVERFLOW | Status.INEXACT
    t_bits = max(0, estimate.expn) + 4

    def approximate(wp):
        gp = wp + t_bits
        lp = gp + max(0, y.expn) + 4
        value, err = _log_fixed(ax, lp, context)
        # t = y * log(ax) scaled by 2^gp
        shift = lp - gp - y.exp
        t = y.man * value
        t_err = y.man * err
        if shift >= 0:
            t >>= shift
            t_err = (t_err >> shift) + 1
        else:
            t <<= -shift
            t_err <<= -shift
        if y.sign:
            t = -t
        man, exp, err = _exp_of_fixed(t, gp, context)
        return sign, man, exp, err + 2 * t_err + 2

    return _ziv(approximate, prec, flags, 'pow')


#
# Trigonometric functions
#

def _sin_cos_fixed(r, gp):
    '''Return (sin, cos, err) of r scaled by 2^gp with |r| <= 1, err bounding the error
    in units of both.'''
    r2 = r * r >> gp
    one = 1 << gp
    n_terms = 0

    def series(first, k):
        nonlocal n_terms
        total = term = first
        negate = False
        while term:
            term = (term * r2 >> gp) // ((k + 1) * (k + 2))
            k += 2
            negate = not negate
            total += -term if negate else term
            n_terms += 1
        return total

    cos = series(one, 0)
    sin = series(abs(r), 1)
    if r < 0:
        sin = -sin
    return sin, cos, 2 * n_terms + 2


def _reduced_sin_cos(x, gp, context):
    '''Return (sin, cos, err) of the finite x scaled by 2^gp.'''
    # Reduce x modulo pi / 2 with enough bits of pi to cover the integer part
    extra = max(0, x.expn) + 4
    lp = gp + extra
    half_pi = _pi(lp, context) >> 1
    X = to_fixed(x, lp)
    n = (2 * X + half_pi) // (2 * half_pi)
    r = (X - n * half_pi) >> extra
    sin, cos, err = _sin_cos_fixed(r, gp)
    quadrant = n & 3
    if quadrant == 1:
        sin, cos = cos, -sin
    elif quadrant == 2:
        sin, cos = -sin, -cos
    elif quadrant == 3:
        sin, cos = -cos, sin
    return sin, cos, err + 4


def _trig_special(x, toward_zero, prec, flags):
    '''Common handling of special and tiny arguments of sin, tan, atan and asin, which are
    odd functions with f(x) ~ x.  Return None for other arguments.'''
    if x.is_nan():
        return NAN, Status(0)
    if x.is_zero():
        return x, Status(0)
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP
    if x.is_finite() and 2 * x.expn < -(max(prec, x.man.bit_length()) + 8):
        return _perturb(x, toward_zero, prec, flags)
    return None


def sin(x, prec, flags, context=None):
    '''Return sin(x) correctly rounded, and the status.'''
    if x.is_inf():
        return NAN, Status.INVALID_OP
    result = _trig_special(x, True, prec, flags)
    if result:
        return result
    small = max(0, -x.expn)

    def approximate(wp):
        gp = wp + small
        value, _cos, err = _reduced_sin_cos(x, gp, context)
        return value < 0, abs(value), -gp, err

    return _ziv(approximate, prec, flags, 'sin')


def cos(x, prec, flags, context=None):
    '''Return cos(x) correctly rounded, and the status.'''
    if x.is_nan():
        return NAN, Status(0)
    if x.is_inf():
        return NAN, Status.INVALID_OP
    if x.is_zero():
        return normalize(False, 0, 1, prec, flags)
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP
    if 2 * x.expn < -(prec + 8):
        return _perturb(_ONE, True, prec, flags)

    def approximate(wp):
        _sin, value, err = _reduced_sin_cos(x, wp, context)
        return value < 0, abs(value), -wp, err

    return _ziv(approximate, prec, flags, 'cos')


def tan(x, prec, flags, context=None):
    '''Return tan(x) correctly rounded, and the status.'''
    if x.is_inf():
        return NAN, Status.INVALID_OP
    result = _trig_special(x, False, prec, flags)
    if result:
        return result
    small = max(0, -x.expn)

    def approximate(wp):
        gp = wp + small
        sin, cos, err = _reduced_sin_cos(x, gp, context)
        if abs(cos) <= err:
            return False, 0, -gp, 1
        value = (sin << gp) // cos
        value_err = ((err << gp) + abs(value) * err) // abs(cos) + 2
        return value < 0, abs(value), -gp, value_err

    return _ziv(approximate, prec, flags, 'tan')


#
# Inverse trigonometric functions
#

def _atan_fixed(t, gp, context):
    '''Return (A, err): atan(t / 2^gp) for t >= 0 is within err units of A / 2^gp, given
    t exact.'''
    h = isqrt(gp) // 2
    ip = gp + h + _guard(gp)
    one = 1 << ip
    t <<= ip - gp

    invert = t > one
    if invert:
        t = (one << ip) // t

    # atan(t) = 2 atan(t / (1 + sqrt(1 + t^2)))
    for _ in range(h):
        t = (t << ip) // (one + isqrt((one << ip) + t * t))

    t2 = t * t >> ip
    total = power = t
    k = 1
    negate = False
    while power:
        power = power * t2 >> ip
        k += 2
        negate = not negate
        total += -(power // k) if negate else power // k
    total <<= h

    if invert:
        total = (_pi(ip, context) >> 1) - total
    return total >> (ip - gp), 3


def atan(x, prec, flags, context=None):
    '''Return atan(x) correctly rounded, and the status.'''
    if x.is_inf():
        return _pi_multiple(1, 2, x.sign, prec, flags, context)
    result = _trig_special(x, True, prec, flags)
    if result:
        return result
    small = max(0, -x.expn)

    def approximate(wp):
        gp = wp + small
        value, err = _atan_fixed(to_fixed(x.copy_abs(), gp), gp, context)
        return x.sign, value, -gp, err + 1

    return _ziv(approximate, prec, flags, 'atan')


def _asin_fixed(x, gp, context):
    '''Return (A, err) for |x| < 1: asin(|x|) is within err units of A / 2^gp.'''
    # asin(x) = atan(x / sqrt(1 - x^2)), computed with x exact
    gp = max(gp, -x.exp)
    one = 1 << gp
    X = to_fixed(x.copy_abs(), gp)
    D = isqrt(one * one - X * X)
    T = (X << gp) // D
    T_err = T // D + 2
    # The derivative of atan shrinks the error of large arguments
    T_err = (T_err << (2 * gp)) // ((1 << (2 * gp)) + T * T) + 1
    value, err = _atan_fixed(T, gp, context)
    return value, err + T_err, gp


def asin(x, prec, flags, context=None):
    '''Return asin(x) correctly rounded, and the status.'''
    if x.is_finite() and not x.is_zero():
        order = compare(x.copy_abs(), _ONE)
        if order == Compare.GREATER_THAN:
            return NAN, Status.INVALID_OP
        if order == Compare.EQUAL:
            return _pi_multiple(1, 2, x.sign, prec, flags, context)
    elif x.is_inf():
        return NAN, Status.INVALID_OP
    result = _trig_special(x, False, prec, flags)
    if result:
        return result
    small = max(0, -x.expn)

    def approximate(wp):
        value, err, gp = _asin_fixed(x, wp + small, context)
        return x.sign, value, -gp, err

    return _ziv(approximate, prec, flags, 'asin')


def acos(x, prec, flags, context=None):
    '''Return acos(x) correctly rounded, and the status.'''
    if x.is_nan():
        return NAN, Status(0)
    if x.is_inf():
        return NAN, Status.INVALID_OP
    if x.is_zero():
        return _pi_multiple(1, 2, False, prec, flags, context)
    order = compare(x.copy_abs(), _ONE)
    if order == Compare.GREATER_THAN:
        return NAN, Status.INVALID_OP
    if order == Compare.EQUAL:
        if x.sign:
            return _pi_multiple(1, 1, False, prec, flags, context)
        return make_zero(False), Status(0)
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP

    # Near 1 the result is about sqrt(2 (1 - x))
    near_one = 1
    if x.expn == 0 and not x.sign:
        near_one += max(0, -sub(_ONE, x, PREC_INF, 0)[0].expn) // 2

    def approximate(wp):
        value, err, gp = _asin_fixed(x, wp + near_one, context)
        half_pi = _pi(gp, context) >> 1
        value = half_pi - value if not x.sign else half_pi + value
        return False, value, -gp, err + 2

    return _ziv(approximate, prec, flags, 'acos')


def atan2(y, x, prec, flags, context=None):
    '''Return the angle of the point (x, y) from the positive x axis, in [-pi, pi],
    correctly rounded, and the status.'''
    if y.is_nan() or x.is_nan():
        return NAN, Status(0)
    if y.is_zero():
        if x.sign:
            return _pi_multiple(1, 1, y.sign, prec, flags, context)
        return y, Status(0)
    if y.is_inf():
        if x.is_inf():
            return _pi_multiple(3 if x.sign else 1, 4, y.sign, prec, flags, context)
        return _pi_multiple(1, 2, y.sign, prec, flags, context)
    if x.is_inf():
        if x.sign:
            return _pi_multiple(1, 1, y.sign, prec, flags, context)
        return make_zero(y.sign), Status(0)
    if x.is_zero():
        return _pi_multiple(1, 2, y.sign, prec, flags, context)
    if prec == PREC_INF:
        return NAN, Status.INVALID_OP

    # Both finite and non-zero.  Work with the ratio no greater than one.
    ay, ax = y.copy_abs(), x.copy_abs()
    swap = compare(ay, ax) == Compare.GREATER_THAN
    num, den = (ax, ay) if swap else (ay, ax)
    ratio_expn = num.expn - den.expn

    def ratio(shift):
        # floor(num / den * 2^shift)
        if ratio_expn + shift < -1:
            return 0
        shift += num.exp - den.exp
        if shift >= 0:
            return (num.man << shift) // den.man
        return num.man // (den.man << -shift)

    def approximate(wp):
        if not (swap or x.sign) and ratio_expn < -(wp + 4):
            # atan(r) = r - r^3/3 ... and r^2 is below the precision
            shift = wp + 8 - ratio_expn
            return y.sign, ratio(shift), -shift, 2
        gp = wp if swap or x.sign else wp + max(0, -ratio_expn)
        value, err = _atan_fixed(ratio(gp), gp, context)
        err += 1
        if swap or x.sign:
            half_pi = _pi(gp, context) >> 1
            if swap:
                value = half_pi - value
            if x.sign:
                value = 2 * half_pi - value
            err += 4
        return y.sign, value, -gp, err

    return _ziv(approximate, prec, flags, 'atan2')
