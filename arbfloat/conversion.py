#
# Text conversion of arbitrary-precision binary floating point numbers
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging
import re
from functools import lru_cache
from math import ceil, floor, log2

import attr

from .errors import AllocationError
from .flags import (
    Status, RND_MASK, FLAG_SUBNORMAL, EXP_BITS_MASK, EXP_BITS_SHIFT, PREC_INF, RADIX_MAX,
    ATOF_NO_HEX, ATOF_BIN_OCT, ATOF_NO_NAN_INF, FTOA_FORMAT_MASK, FTOA_FORMAT_FIXED,
    FTOA_FORMAT_FRAC, FTOA_FORMAT_FREE, FTOA_FORCE_EXP, FTOA_ADD_PREFIX, FTOA_JS_QUIRKS,
    exponent_range, check_prec,
)
from .number import NAN, make_zero, make_infinity
from .rounding import (
    normalize, round_number, round_up, lost_fraction_of_division,
    make_overflow_value, make_underflow_value,
)


__all__ = ('atof', 'ftoa', 'TextFormat', 'TextBuffer', 'check_radix')

logger = logging.getLogger(__name__)

DIGITS = '0123456789abcdefghijklmnopqrstuvwxyz'
_FORMAT_SPECS = {2: 'b', 8: 'o', 16: 'x'}
_PREFIXES = {2: '0b', 8: '0o', 16: '0x'}
# Radices whose digits are whole groups of bits
_BINARY_RADICES = (2, 4, 8, 16, 32)
# Positional notation is used for leading digit exponents below this in the free formats
FREE_EXPONENT_LIMIT = 21
# Exponents with more digits than this are certain to overflow or underflow
MAX_EXPONENT_DIGITS = 40


def check_radix(radix, allow_auto=False):
    '''Raise if radix is not a valid radix.  Zero requests auto-detection if allowed.'''
    if not isinstance(radix, int):
        raise TypeError('radix must be an integer')
    if radix == 0 and allow_auto:
        return
    if not 2 <= radix <= RADIX_MAX:
        raise ValueError(f'radix {radix} out of range')


def _digits_to_int(digits, radix):
    '''Return the integer value of a string of digits.  Python refuses to convert very long
    strings of non-binary radices in one step.'''
    if len(digits) <= 1000 or radix in _BINARY_RADICES:
        return int(digits, radix)
    half = len(digits) // 2
    return (_digits_to_int(digits[:half], radix) * radix ** (len(digits) - half)
            + _digits_to_int(digits[half:], radix))


def _to_digits(n, radix):
    '''Return the digits of the non-negative integer n in radix.'''
    spec = _FORMAT_SPECS.get(radix)
    if spec:
        return format(n, spec)
    if n.bit_length() <= 2048:
        if radix == 10:
            return str(n)
        digits = []
        while n:
            n, digit = divmod(n, radix)
            digits.append(DIGITS[digit])
        return ''.join(reversed(digits)) or '0'
    half = int(n.bit_length() / 2 / log2(radix))
    high, low = divmod(n, radix ** half)
    return _to_digits(high, radix) + _to_digits(low, radix).rjust(half, '0')


#
# Text to number
#

@lru_cache(maxsize=None)
def _number_regex(radix):
    '''Return the compiled regular expression matching numbers in radix, without sign or
    prefix.'''
    if radix <= 10:
        digits = f'0-{radix - 1}'
    else:
        digits = f'0-9a-{DIGITS[radix - 1]}'
    markers = '@'
    if radix <= 10:
        markers += 'e'
    if radix in (2, 8, 16):
        markers += 'p'
    return re.compile(
        # (integer.[opt]fraction[opt] or .fraction)
        f'(?:([{digits}]+)\\.?([{digits}]*)|\\.([{digits}]+))'
        # marker exp-sign[opt]dec-exponent   [opt]
        f'(?:([{markers}])([-+]?[0-9]+))?$',
        re.ASCII | re.IGNORECASE
    )


def _strip_prefix(string, radix, flags):
    prefix = string[:2].lower()
    if prefix == '0x' and radix in (0, 16) and not flags & ATOF_NO_HEX:
        return 16, string[2:]
    if flags & ATOF_BIN_OCT:
        if prefix == '0b' and radix in (0, 2):
            return 2, string[2:]
        if prefix == '0o' and radix in (0, 8):
            return 8, string[2:]
    return radix or 10, string


def atof(text, radix, prec, flags):
    '''Convert text to a number of prec bits rounded as flags specify.

    radix is 2 to 36, or 0 to detect it from a prefix (decimal by default).  Returns a
    (number, status) pair; malformed text gives a NaN and INVALID_OP.
    '''
    if not isinstance(text, str):
        raise TypeError('text must be a string')
    check_radix(radix, allow_auto=True)
    check_prec(prec)

    string = text.strip()
    sign = string.startswith('-')
    if string.startswith(('-', '+')):
        string = string[1:]

    if not flags & ATOF_NO_NAN_INF:
        special = string.lower()
        if special in ('inf', 'infinity'):
            return make_infinity(sign), Status(0)
        if special == 'nan':
            return NAN, Status(0)

    radix, string = _strip_prefix(string, radix, flags)
    match = _number_regex(radix).match(string)
    if match is None:
        return NAN, Status.INVALID_OP

    int_digits, frac_digits, only_frac, marker, exp_digits = match.groups()
    if int_digits is None:
        int_digits, frac_digits = '', only_frac
    frac_digits = frac_digits.rstrip('0')
    significand = _digits_to_int((int_digits + frac_digits) or '0', radix)
    if not significand:
        return make_zero(sign), Status(0)

    exponent = 0
    if exp_digits:
        if len(exp_digits.lstrip('+-0')) > MAX_EXPONENT_DIGITS:
            exponent = -(10 ** MAX_EXPONENT_DIGITS) if exp_digits[0] == '-' \
                else 10 ** MAX_EXPONENT_DIGITS
        else:
            exponent = int(exp_digits)

    radix_exp = -len(frac_digits)
    bin_exp = 0
    if marker in ('p', 'P'):
        bin_exp = exponent
    else:
        radix_exp += exponent
    return _scale_to_binary(sign, significand, radix, radix_exp, bin_exp, prec, flags)


def _approx_power(base, n, wp):
    '''Return (man, exp, err): base^n, for n > 0, is at least man * 2^exp and no more than
    (man + err) * 2^exp.  man has at most wp bits.'''
    man, exp, count = 1, 0, 0
    # count bounds the relative error in units of 2^(1 - wp)
    for bit in format(n, 'b'):
        man *= man
        exp *= 2
        count *= 2
        if bit == '1':
            man *= base
        shift = man.bit_length() - wp
        if shift > 0:
            man >>= shift
            exp += shift
            count += 1
    return man, exp, 4 * count + 1


def _scale_to_binary(sign, significand, radix, radix_exp, bin_exp, prec, flags):
    '''Return significand * radix^radix_exp * 2^bin_exp correctly rounded, and the
    status.'''
    # radix = odd * 2^twos
    twos = (radix & -radix).bit_length() - 1
    odd = radix >> twos
    bin_exp += twos * radix_exp
    if odd == 1 or radix_exp == 0:
        return normalize(sign, bin_exp, significand, prec, flags)

    # Get clear overflows and underflows out of the way without huge powers
    e_min, e_max = exponent_range(flags)
    rounding = flags & RND_MASK
    log2_value = log2(significand) + radix_exp * log2(odd) + bin_exp
    if log2_value > e_max + 2:
        return (make_overflow_value(rounding, sign, prec, flags),
                Status.OVERFLOW | Status.INEXACT)
    if prec == PREC_INF:
        if log2_value < e_min - 4:
            # Far too small to be a representable integer multiple
            return NAN, Status.INVALID_OP
    elif log2_value < e_min - prec - 4:
        return (make_underflow_value(rounding, sign, prec, flags),
                Status.UNDERFLOW | Status.INEXACT)

    n = abs(radix_exp)
    exact_bits = max(0 if prec == PREC_INF else prec, significand.bit_length()) + 64
    if prec == PREC_INF or n * log2(odd) <= exact_bits:
        power = odd ** n
        if radix_exp > 0:
            return normalize(sign, bin_exp, significand * power, prec, flags)
        if prec == PREC_INF:
            quot, rem = divmod(significand, power)
            if rem:
                return NAN, Status.INVALID_OP
            return normalize(sign, bin_exp, quot, prec, flags)
        shift = max(0, prec + 2 + power.bit_length() - significand.bit_length())
        quot, rem = divmod(significand << shift, power)
        return normalize(sign, bin_exp - shift - 1, quot * 2 + bool(rem), prec, flags)

    # The power is too large to compute exactly.  Bound it and increase the working
    # precision until both bounds round the same way; they cannot straddle a rounding
    # boundary forever as the exact value is not dyadic or has too many bits.
    wp = prec + n.bit_length() + 32
    while True:
        man, exp, err = _approx_power(odd, n, wp)
        if radix_exp > 0:
            low, high = significand * man, significand * (man + err)
            e = bin_exp + exp
        else:
            shift = max(0, wp + man.bit_length() - significand.bit_length() + 2)
            low = (significand << shift) // (man + err)
            high = (significand << shift) // man + 1
            e = bin_exp - exp - shift
        if normalize(sign, e, low, prec, flags)[0] == normalize(sign, e, high, prec, flags)[0]:
            return normalize(sign, e - 2, (low + high) * 2 + 1, prec, flags)
        wp += max(32, wp // 2)
        logger.debug('parse: retrying with %d bits', wp)


#
# Number to text
#

@attr.s(slots=True, kw_only=True, frozen=True)
class TextFormat:
    '''Controls the output of conversion to text.  Usually decoded from format flags.'''

    # One of the FTOA_FORMAT_ values
    style = attr.ib(default=FTOA_FORMAT_FREE)
    # If True, exponential notation is always used for non-zero finite numbers
    force_exp = attr.ib(default=False)
    # If True, output in radix 2, 8 and 16 is preceded by 0b, 0o and 0x respectively
    add_prefix = attr.ib(default=False)
    # If True positive exponents display a '+'
    force_exp_sign = attr.ib(default=False)
    # The string output for infinity
    inf = attr.ib(default='Inf')
    # The string output for NaNs
    nan = attr.ib(default='NaN')

    @classmethod
    def from_flags(cls, flags):
        js_quirks = bool(flags & FTOA_JS_QUIRKS)
        return cls(style=flags & FTOA_FORMAT_MASK,
                   force_exp=bool(flags & FTOA_FORCE_EXP),
                   add_prefix=bool(flags & FTOA_ADD_PREFIX),
                   force_exp_sign=js_quirks,
                   inf='Infinity' if js_quirks else 'Inf')

    def leading_sign(self, sign):
        return '-' if sign else ''

    def prefix(self, radix):
        return _PREFIXES.get(radix, '') if self.add_prefix else ''

    def exponent_str(self, exponent):
        '''Return the formatted exponent.'''
        sign = '-' if exponent < 0 else '+' if self.force_exp_sign else ''
        return f'{sign}{abs(exponent)}'

    def format_non_finite(self, number):
        '''Returns the output text for infinities and NaNs.'''
        if number.is_nan():
            return self.nan
        return self.leading_sign(number.sign) + self.inf

    def use_positional(self, exponent, limit):
        return not self.force_exp and -7 < exponent < limit

    def format_digits(self, sign, radix, exponent, digits, positional, marker='e'):
        '''sign is True if the number is negative.  digits is a string of significant digits
        and exponent the exponent of the leading digit, i.e. the radix point appears
        exponent digits after it.  marker introduces exponents.
        '''
        parts = [self.leading_sign(sign), self.prefix(radix)]
        if positional:
            point = exponent + 1
            if point <= 0:
                parts.extend(('0.', '0' * -point, digits))
            elif point >= len(digits):
                parts.extend((digits, '0' * (point - len(digits))))
            else:
                parts.extend((digits[:point], '.', digits[point:]))
        else:
            parts.append(digits[0])
            if len(digits) > 1:
                parts.extend(('.', digits[1:]))
            parts.extend((marker, self.exponent_str(exponent)))
        return ''.join(parts)

    def format_fraction(self, sign, radix, integer, fraction):
        parts = [self.leading_sign(sign), self.prefix(radix), integer]
        if fraction:
            parts.extend(('.', fraction))
        return ''.join(parts)


def _scaled_ratio(number, k, radix):
    '''Return (num, den) with num / den = |number| / radix^k.'''
    num, den = number.man, 1
    if number.exp >= 0:
        num <<= number.exp
    else:
        den <<= -number.exp
    if k >= 0:
        den *= radix ** k
    else:
        num *= radix ** -k
    return num, den


def _leading_exponent(number, radix):
    '''Return e such that radix^e <= |number| < radix^(e + 1) for finite non-zero number.'''
    e = floor((number.expn - 1) / log2(radix))
    while True:
        num, den = _scaled_ratio(number, e, radix)
        if num < den:
            e -= 1
        elif num >= den * radix:
            e += 1
        else:
            return e


def _round_integer(num, den, radix, rounding, sign):
    '''Return num / den rounded to an integer.  Ties to even refer to the last digit.'''
    quot, rem = divmod(num, den)
    lost_fraction = lost_fraction_of_division(rem, den)
    if round_up(rounding, lost_fraction, sign, bool(quot % radix & 1)):
        quot += 1
    return quot


def _fixed_digits(number, radix, n_digits, rounding):
    '''Return (exponent, digits): number rounded to n_digits significant digits, exponent
    being that of the leading digit.'''
    exponent = _leading_exponent(number, radix)
    num, den = _scaled_ratio(number, exponent - n_digits + 1, radix)
    quot = _round_integer(num, den, radix, rounding, number.sign)
    if quot == radix ** n_digits:
        quot //= radix
        exponent += 1
    return exponent, _to_digits(quot, radix)


def _fraction_digits(number, radix, n_digits, rounding):
    '''Return (integer, fraction): the digits of number rounded to n_digits after the radix
    point.'''
    num, den = _scaled_ratio(number, -n_digits, radix)
    digits = _to_digits(_round_integer(num, den, radix, rounding, number.sign), radix)
    digits = digits.rjust(n_digits + 1, '0')
    return digits[:len(digits) - n_digits], digits[len(digits) - n_digits:]


def _free_digits(number, radix, prec, rounding):
    '''Return (exponent, digits): enough digits to read back the number of prec bits,
    trailing zeroes removed.'''
    if radix in _BINARY_RADICES:
        # All the digits, which are finite
        bits = radix.bit_length() - 1
        n_digits = (number.man.bit_length() + 2 * bits - 1) // bits
    else:
        n_digits = 1 + ceil(prec / log2(radix))
    exponent, digits = _fixed_digits(number, radix, n_digits, rounding)
    return exponent, digits.rstrip('0')


def _subnormal_precision(number, prec, flags):
    '''Return (number, prec, uneven) for finding the shortest digits of number under the
    exponent range of flags.

    A subnormal only holds the bits at or above the smallest subnormal, so it is rounded
    to them and prec shrinks to their count.  uneven is False when the neighbour below
    is as far away as the neighbour above despite a power-of-two significand, which
    is so for subnormals and the smallest normal.
    '''
    if not flags & FLAG_SUBNORMAL:
        return number, prec, True
    e_min = exponent_range(flags)[0]
    if number.expn > e_min:
        return number, prec, True
    format_flags = flags & (RND_MASK | FLAG_SUBNORMAL | (EXP_BITS_MASK << EXP_BITS_SHIFT))
    number = round_number(number, prec, format_flags)[0]
    if number.is_zero():
        return number, prec, True
    if number.expn == e_min:
        return number, prec, False
    return number, number.expn - (e_min - prec), False


def _shortest_digits(number, prec, radix, uneven=True):
    '''Return (exponent, digits): the fewest digits that read back as the number when
    rounding to nearest at prec bits.  The number must be representable at prec bits.
    If uneven is False the gap below a power-of-two significand is not halved.

    See "How to Print Floating-Point Numbers Accurately" by Steele and White, in
    particular Table 3.
    '''
    # number = significand * 2^e_p with significand of prec bits
    shift = prec - number.man.bit_length()
    significand = number.man << shift
    e_p = number.exp - shift
    R = significand << max(0, e_p)
    M = 1 << max(0, e_p)
    S = 1 << max(0, -e_p)

    # Scale so that R / S is in [1 / radix, 1), starting from an estimate
    exponent = _leading_exponent(number, radix)
    if exponent >= 0:
        S *= radix ** (exponent + 1)
    else:
        scale = radix ** -(exponent + 1)
        R *= scale
        M *= scale

    while R * radix < S:
        exponent -= 1
        R *= radix
        M *= radix
    # Rounding up might carry into the next power of the radix
    while 2 * R + M >= 2 * S:
        S *= radix
        exponent += 1

    # Now the arithmetic value is R / S.  M is the value of one high-ulp, and is scaled
    # alongside R.  A low-ulp is the same size except on a binade boundary, where it is
    # half.  Stop when the remainder is strictly within half a low-ulp of zero or half a
    # high-ulp of S; ties are fine if the significand is even.
    low_shift = 2 if uneven and significand == 1 << (prec - 1) else 1
    is_even = (significand & 1) == 0

    digits = []
    while True:
        U, R = divmod(R * radix, S)
        M *= radix
        low = (R << low_shift) < M + is_even
        high = 2 * (S - R) < M + is_even
        if low or high:
            break
        digits.append(U)

    if high and not low:
        U += 1
    elif low and high:
        if 2 * R > S or (2 * R == S and U & 1):
            U += 1
    digits.append(U)

    # Propagate a carry out of the last digit
    pos = len(digits) - 1
    while digits[pos] == radix:
        digits[pos] = 0
        if pos == 0:
            digits.insert(0, 1)
            exponent += 1
            break
        pos -= 1
        digits[pos] += 1

    return exponent, ''.join(DIGITS[d] for d in digits).rstrip('0') or '0'


def _binary_exponent_digits(number, radix, n_digits, rounding):
    '''Return (exponent, digits) with number = 1.ddd (digits in radix, a power of two) times
    2^exponent.  n_digits of None outputs all the digits exactly.'''
    bits = radix.bit_length() - 1
    if n_digits is not None:
        number = round_number(number, 1 + (n_digits - 1) * bits, rounding)[0]
    man = number.man
    frac_bits = man.bit_length() - 1
    if n_digits is None:
        n_frac = -(-frac_bits // bits)
    else:
        n_frac = n_digits - 1
    fraction = (man - (1 << frac_bits)) << (n_frac * bits - frac_bits)
    digits = '1'
    if n_frac:
        digits += _to_digits(fraction, radix).rjust(n_frac, '0')
    return number.expn - 1, digits


def ftoa(number, radix, prec, flags, text_format=None):
    '''Return the text of the number in radix.

    The format flags choose the meaning of prec: the number of significant digits
    (FTOA_FORMAT_FIXED), the number of digits after the radix point (FTOA_FORMAT_FRAC), or
    the precision in bits of the number (FTOA_FORMAT_FREE and FTOA_FORMAT_FREE_MIN).  The
    flags' rounding mode applies to dropped digits.
    '''
    check_radix(radix)
    text_format = text_format or TextFormat.from_flags(flags)
    if not number.is_finite():
        return text_format.format_non_finite(number)
    if number.is_zero():
        fraction = '0' * prec if text_format.style == FTOA_FORMAT_FRAC else ''
        return text_format.format_fraction(number.sign, radix, '0', fraction)

    rounding = flags & RND_MASK
    style = text_format.style
    if style == FTOA_FORMAT_FRAC:
        if prec < 0:
            raise ValueError('number of fraction digits cannot be negative')
        integer, fraction = _fraction_digits(number, radix, prec, rounding)
        return text_format.format_fraction(number.sign, radix, integer, fraction)

    if style == FTOA_FORMAT_FIXED:
        if prec < 1:
            raise ValueError('number of significant digits must be positive')
        exponent, digits = _fixed_digits(number, radix, prec, rounding)
        limit = prec
        n_digits = prec
    else:
        if prec == PREC_INF:
            prec = max(2, number.man.bit_length())
        number = round_number(number, prec, rounding)[0]
        if not number.is_finite():
            return text_format.format_non_finite(number)
        if style == FTOA_FORMAT_FREE:
            exponent, digits = _free_digits(number, radix, prec, rounding)
        else:
            number, prec, uneven = _subnormal_precision(number, prec, flags)
            if number.is_zero():
                return text_format.format_fraction(number.sign, radix, '0', '')
            exponent, digits = _shortest_digits(number, prec, radix, uneven)
        limit = FREE_EXPONENT_LIMIT
        n_digits = None

    if text_format.use_positional(exponent, limit):
        return text_format.format_digits(number.sign, radix, exponent, digits, True)
    if radix in _PREFIXES:
        exponent, digits = _binary_exponent_digits(number, radix, n_digits, rounding)
        return text_format.format_digits(number.sign, radix, exponent, digits, False, 'p')
    return text_format.format_digits(number.sign, radix, exponent, digits, False,
                                     'e' if radix == 10 else '@')


@attr.s(slots=True, eq=False, repr=False)
class TextBuffer:
    '''Formatted text held in a buffer obtained from a context's allocator.  Release it with
    release() or by using it as a context manager.'''

    context = attr.ib()
    _buffer = attr.ib()
    length = attr.ib()

    @classmethod
    def from_text(cls, context, text):
        '''Copy text into a new buffer from the context's allocator.'''
        data = text.encode('ascii')
        buffer = context.allocator.resize(None, len(data) + 1)
        if buffer is None:
            logger.warning('allocation of %d byte text buffer failed', len(data) + 1)
            raise AllocationError('format', Status.MEM_ERROR)
        buffer[:len(data)] = data
        return cls(context, buffer, len(data))

    @property
    def released(self):
        return self._buffer is None

    @property
    def text(self):
        if self._buffer is None:
            raise ValueError('text buffer has been released')
        return self._buffer[:self.length].decode('ascii')

    def release(self):
        '''Return the buffer to the allocator.  Releasing twice does nothing.'''
        if self._buffer is not None:
            self._buffer = self.context.allocator.resize(self._buffer, 0)

    def __enter__(self):
        return self

    def __exit__(self, etype, value, traceback):
        self.release()

    def __len__(self):
        return self.length

    def __str__(self):
        return self.text

    def __eq__(self, other):
        if isinstance(other, str):
            return self.text == other
        if isinstance(other, TextBuffer):
            return self.text == other.text
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        if self._buffer is None:
            return '<TextBuffer released>'
        return f'<TextBuffer {self.text!r}>'
