#
# The flat, handle-based interface of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import threading

from .context import Context
from .conversion import atof, ftoa, TextBuffer
from .dispatch import apply, apply2, DEFAULT_PREC
from .flags import Status, ROUND_HALF_EVEN, digits_to_bits
from .number import from_int


__all__ = ('initialize', 'teardown', 'get_default_context', 'ensure_default_context',
           'create', 'destroy', 'is_finite', 'is_nan', 'is_zero', 'assign', 'set_from_native',
           'to_native', 'compare', 'apply', 'apply2', 'parse', 'format_value', 'digits_to_bits')

_default_context = None
_lock = threading.Lock()


def initialize(allocator=None):
    '''Create the default context, binding the allocator (a HeapAllocator if None).'''
    global _default_context
    with _lock:
        if _default_context is not None:
            raise RuntimeError('arbfloat is already initialized')
        _default_context = Context(allocator).initialize()
        return _default_context


def teardown():
    '''Close the default context if there is one.'''
    global _default_context
    with _lock:
        context, _default_context = _default_context, None
    if context is not None:
        context.close()


def get_default_context():
    context = _default_context
    if context is None:
        raise RuntimeError('arbfloat is not initialized')
    return context


def ensure_default_context():
    '''Return the default context, initializing it with a heap allocator if necessary.'''
    global _default_context
    with _lock:
        if _default_context is None:
            _default_context = Context().initialize()
        return _default_context


def create(context=None):
    '''Return a new value, +0, owned by context or the default context.'''
    return (context or get_default_context()).create()


def destroy(value):
    value.destroy()


def is_finite(value):
    return value.is_finite()


def is_nan(value):
    return value.is_nan()


def is_zero(value):
    return value.is_zero()


def assign(dst, src):
    '''Copy the value of src to dst.  Returns MEM_ERROR if dst could not be resized.'''
    return dst.assign(src)


def set_from_native(value, native):
    '''Set value to a Python float or int, exactly.'''
    if isinstance(native, bool) or not isinstance(native, (int, float)):
        raise TypeError(f'cannot set a value from {type(native).__name__}')
    if isinstance(native, int):
        return value.store(from_int(native))
    return value.set_float64(native)


def to_native(value, rounding=ROUND_HALF_EVEN):
    '''Return value as a Python float, rounded as specified.'''
    return value.to_float(rounding)


def compare(a, b):
    return a.compare(b)


def parse(result, text, radix=10, prec=DEFAULT_PREC, flags=0):
    '''Set result to the number text represents in radix (0 to auto-detect), rounded to
    prec bits as flags specify.  Returns the status.'''
    number, status = atof(text, radix, prec, int(flags))
    return Status(status) | result.store(number)


def format_value(value, radix=10, prec=DEFAULT_PREC, flags=0):
    '''Return a TextBuffer holding value converted to text in radix.  See ftoa() for the
    meaning of prec and flags.'''
    text = ftoa(value.number, radix, prec, int(flags))
    return TextBuffer.from_text(value.context, text)
