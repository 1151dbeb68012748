#
# Contexts and allocator bindings of arbitrary-precision binary arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging
import threading
import weakref

from .transcendental import pi_fixed, log2_fixed
from .value import Value


__all__ = ('Allocator', 'HeapAllocator', 'LimitedAllocator', 'Context')

logger = logging.getLogger(__name__)

# Fixed-point calculators of the constants a context caches
CONSTANTS = {
    'pi': pi_fixed,
    'log2': log2_fixed,
}


class Allocator:
    '''The memory capability a Context binds.

    resize(buffer, size) returns a buffer of size bytes whose leading bytes are those of
    buffer; buffer is None for a fresh allocation.  Resizing to zero frees the buffer and
    returns None.  Returning None for a non-zero size reports that the request could not be
    satisfied.

    Allocators shared by contexts used from several threads must be thread-safe.
    '''

    def resize(self, buffer, size):
        raise NotImplementedError


class HeapAllocator(Allocator):
    '''Allocates bytearrays from the Python heap, keeping count of what is in use.'''

    def __init__(self):
        self.lock = threading.Lock()
        self.bytes_in_use = 0
        self.buffers_in_use = 0

    def _can_allocate(self, old_size, size):
        return True

    def resize(self, buffer, size):
        old_size = 0 if buffer is None else len(buffer)
        with self.lock:
            if size <= 0:
                if buffer is not None:
                    self.bytes_in_use -= old_size
                    self.buffers_in_use -= 1
                return None
            if not self._can_allocate(old_size, size):
                return None
            self.bytes_in_use += size - old_size
            if buffer is None:
                self.buffers_in_use += 1
        if buffer is None:
            return bytearray(size)
        if size < old_size:
            del buffer[size:]
        else:
            buffer.extend(bytes(size - old_size))
        return buffer


class LimitedAllocator(HeapAllocator):
    '''A heap allocator that refuses requests taking it beyond limit bytes in use.'''

    def __init__(self, limit):
        super().__init__()
        self.limit = limit

    def _can_allocate(self, old_size, size):
        return self.bytes_in_use + size - old_size <= self.limit


class Context:
    '''Owns the allocator binding, the registry of live values and the cache of
    mathematical constants.  A context must be initialized before values are created,
    and closed when done with.
    '''

    __slots__ = ('allocator', 'initialized', 'closed', '_pending_allocator', '_values',
                 '_constants', '_lock', '__weakref__')

    def __init__(self, allocator=None):
        self.allocator = None
        self.initialized = False
        self.closed = False
        self._pending_allocator = allocator
        self._values = weakref.WeakSet()
        self._constants = {}
        self._lock = threading.Lock()

    def initialize(self):
        '''Bind the allocator.  Must be called exactly once.'''
        if self.initialized:
            raise RuntimeError('context already initialized')
        if self.closed:
            raise RuntimeError('context has been closed')
        self.allocator = self._pending_allocator or HeapAllocator()
        self.initialized = True
        logger.debug('initialized context with %s', type(self.allocator).__name__)
        return self

    def close(self):
        '''Tear down the context.  Values still alive are destroyed.'''
        if self.closed:
            return
        live = list(self._values)
        if live:
            logger.warning('closing context with %d live values', len(live))
            for value in live:
                value.destroy()
        self._constants.clear()
        self.closed = True
        logger.debug('closed context')

    def __enter__(self):
        if not self.initialized:
            self.initialize()
        return self

    def __exit__(self, etype, value, traceback):
        self.close()

    def check_usable(self):
        if not self.initialized:
            raise RuntimeError('context is not initialized')
        if self.closed:
            raise RuntimeError('context has been closed')

    def create(self):
        '''Return a new Value in the zero state owned by this context.'''
        self.check_usable()
        value = Value(self)
        self._values.add(value)
        return value

    def forget(self, value):
        self._values.discard(value)

    @property
    def live_values(self):
        return len(self._values)

    def cached_constant(self, name, bits, compute):
        '''Return the constant name as an integer scaled by 2^bits, truncated.

        compute(bits) calculates it afresh; the most precise value calculated so far is
        kept.  The result is within 2 units of the last place.
        '''
        with self._lock:
            cached = self._constants.get(name)
        if cached is None or cached[0] < bits:
            # Grow geometrically so repeated small increases do not recompute each time
            calc_bits = bits
            if cached is not None:
                calc_bits = max(bits, cached[0] + cached[0] // 2)
            cached = (calc_bits, compute(calc_bits))
            logger.debug('computed constant %s to %d bits', name, calc_bits)
            with self._lock:
                self._constants[name] = cached
        cached_bits, value = cached
        return value >> (cached_bits - bits)

    def constant(self, name, bits):
        '''Return the constant 'pi' or 'log2' scaled by 2^bits, within 2 units.'''
        try:
            compute = CONSTANTS[name]
        except KeyError:
            raise ValueError(f'unknown constant {name!r}') from None
        return self.cached_constant(name, bits, compute)

    def __repr__(self):
        state = 'closed' if self.closed else 'live' if self.initialized else 'new'
        return f'<Context {state} values={self.live_values}>'
