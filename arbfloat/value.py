#
# Value handles of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging
from math import ldexp

from .arith import compare
from .flags import Status, FLAG_SUBNORMAL, ROUND_HALF_EVEN, set_exp_bits
from .number import (
    EXP_ZERO, EXP_INF, EXP_NAN, Number, make_finite, from_float, make_zero,
)
from .rounding import round_number


__all__ = ('Value', 'LIMB_BITS')

logger = logging.getLogger(__name__)

LIMB_BITS = 64
LIMB_BYTES = LIMB_BITS // 8

# binary64 parameters as a flag bundle
FLOAT64_PREC = 53
FLOAT64_FLAGS = set_exp_bits(11) | FLAG_SUBNORMAL


class Value:
    '''A mutable handle to an arbitrary-precision binary floating point number.

    The number is (-1)^sign * 0.m * 2^expn where m is the mantissa, held as a sequence of
    64-bit limbs, least significant first, in a buffer obtained from the owning context's
    allocator.  The top bit of the most significant limb is set and the least significant
    limb is non-zero.  Zeroes, infinities and NaNs have a sentinel expn and own no buffer.

    Values are created by Context.create() and must be released with destroy().
    '''

    __slots__ = ('context', 'sign', 'expn', '_tab', '_alive', '__weakref__')

    def __init__(self, context):
        self.context = context
        self.sign = False
        self.expn = EXP_ZERO
        self._tab = None
        self._alive = True

    def _check(self):
        if not self._alive:
            raise ValueError('value has been destroyed')

    def destroy(self):
        '''Free the mantissa buffer and invalidate the handle.'''
        if self._alive:
            self._free()
            self._alive = False
            self.context.forget(self)

    @property
    def is_alive(self):
        return self._alive

    def _free(self):
        if self._tab is not None:
            self._tab = self.context.allocator.resize(self._tab, 0)

    @property
    def number(self):
        '''An immutable snapshot of the value.'''
        self._check()
        if self._tab is None:
            return Number(self.sign, self.expn, 0)
        man = int.from_bytes(self._tab, 'little')
        return make_finite(self.sign, self.expn - len(self._tab) * 8, man)

    def store(self, number):
        '''Set the value to the number, resizing the mantissa buffer.  Returns a status
        that is non-zero only if the allocator fails, in which case the value is left a
        NaN.'''
        self._check()
        man = number.man
        if not man:
            self._free()
            self.sign = number.sign
            self.expn = number.exp
            return Status(0)

        size = man.bit_length()
        n_limbs = -(-size // LIMB_BITS)
        tab = self.context.allocator.resize(self._tab, n_limbs * LIMB_BYTES)
        if tab is None:
            logger.warning('allocation of %d limbs failed', n_limbs)
            self._free()
            self.sign = False
            self.expn = EXP_NAN
            return Status.MEM_ERROR

        man <<= n_limbs * LIMB_BITS - size
        tab[:] = man.to_bytes(n_limbs * LIMB_BYTES, 'little')
        self._tab = tab
        self.sign = number.sign
        self.expn = number.exp + size
        return Status(0)

    @property
    def n_limbs(self):
        self._check()
        return 0 if self._tab is None else len(self._tab) // LIMB_BYTES

    @property
    def limbs(self):
        '''The mantissa limbs, least significant first.'''
        self._check()
        tab = self._tab or b''
        return tuple(int.from_bytes(tab[n: n + LIMB_BYTES], 'little')
                     for n in range(0, len(tab), LIMB_BYTES))

    def is_finite(self):
        self._check()
        return self.expn < EXP_INF

    def is_nan(self):
        self._check()
        return self.expn == EXP_NAN

    def is_zero(self):
        self._check()
        return self.expn == EXP_ZERO

    def is_inf(self):
        self._check()
        return self.expn == EXP_INF

    def assign(self, src):
        '''Copy the value of src.'''
        return self.store(src.number)

    def set_zero(self, sign=False):
        return self.store(make_zero(sign))

    def set_float64(self, value):
        '''Set to the exact value of a Python float.'''
        return self.store(from_float(value))

    def get_float64(self, rounding=ROUND_HALF_EVEN):
        '''Return a (float, status) pair, the value rounded to binary64 as specified.'''
        number = self.number
        if number.is_nan():
            return float('nan'), Status(0)
        number, status = round_number(number, FLOAT64_PREC, int(rounding) | FLOAT64_FLAGS)
        if number.is_inf():
            result = float('inf')
        elif number.is_zero():
            result = 0.0
        else:
            result = ldexp(number.man, number.exp)
        return -result if number.sign else result, status

    def to_float(self, rounding=ROUND_HALF_EVEN):
        return self.get_float64(rounding)[0]

    def compare(self, other):
        return compare(self.number, other.number)

    def __repr__(self):
        if not self._alive:
            return '<Value destroyed>'
        return f'<Value {self.number!r}>'
