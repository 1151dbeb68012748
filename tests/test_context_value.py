import logging
import math

import pytest

from arbfloat import *
from arbfloat.number import Number, NAN, make_zero, make_infinity, from_float, from_int


class TestAllocator:

    def test_heap_accounting(self, allocator):
        buffer = allocator.resize(None, 16)
        assert len(buffer) == 16
        assert allocator.bytes_in_use == 16
        assert allocator.buffers_in_use == 1
        buffer[:2] = b'ab'
        buffer = allocator.resize(buffer, 24)
        assert buffer[:2] == b'ab' and len(buffer) == 24
        assert allocator.bytes_in_use == 24
        buffer = allocator.resize(buffer, 8)
        assert len(buffer) == 8
        assert allocator.resize(buffer, 0) is None
        assert allocator.bytes_in_use == 0
        assert allocator.buffers_in_use == 0

    def test_limited(self):
        allocator = LimitedAllocator(16)
        buffer = allocator.resize(None, 16)
        assert buffer is not None
        assert allocator.resize(None, 8) is None
        assert allocator.resize(buffer, 24) is None
        assert allocator.resize(buffer, 0) is None
        assert allocator.resize(None, 8) is not None

    def test_base_class(self):
        with pytest.raises(NotImplementedError):
            Allocator().resize(None, 8)


class TestContext:

    def test_lifecycle(self):
        context = Context()
        with pytest.raises(RuntimeError):
            context.create()
        context.initialize()
        assert isinstance(context.allocator, HeapAllocator)
        with pytest.raises(RuntimeError):
            context.initialize()
        value = context.create()
        assert context.live_values == 1
        value.destroy()
        assert context.live_values == 0
        context.close()
        with pytest.raises(RuntimeError):
            context.create()
        with pytest.raises(RuntimeError):
            context.initialize()

    def test_with_statement(self):
        allocator = LimitedAllocator(1000)
        with Context(allocator) as context:
            assert context.allocator is allocator
            context.create()
        assert context.closed

    def test_close_destroys_live_values(self, caplog):
        context = Context().initialize()
        value = context.create()
        value.set_float64(1.5)
        with caplog.at_level(logging.WARNING):
            context.close()
        assert not value.is_alive
        assert context.allocator.bytes_in_use == 0
        assert 'live values' in caplog.text
        with pytest.raises(ValueError):
            value.is_zero()

    def test_close_twice(self):
        context = Context().initialize()
        context.close()
        context.close()
        assert context.closed

    def test_repr(self):
        context = Context()
        assert repr(context) == '<Context new values=0>'
        context.initialize()
        assert repr(context) == '<Context live values=0>'
        context.close()
        assert repr(context) == '<Context closed values=0>'

    @pytest.mark.parametrize('name, value', (
        ('pi', math.pi),
        ('log2', math.log(2)),
    ))
    def test_constant(self, context, name, value):
        fixed = context.constant(name, 100)
        assert abs(fixed / 2 ** 100 - value) < 1e-15

    def test_constant_cache_grows(self, context):
        low = context.constant('pi', 50)
        high = context.constant('pi', 200)
        assert abs((high >> 150) - low) <= 4
        # Served from the cache
        assert abs(context.constant('pi', 50) - low) <= 4

    def test_constant_unknown(self, context):
        with pytest.raises(ValueError):
            context.constant('e', 50)

    def test_cached_constant(self, context):
        calls = []

        def compute(bits):
            calls.append(bits)
            return 3 << bits

        assert context.cached_constant('three', 10, compute) == 3 << 10
        assert context.cached_constant('three', 5, compute) == 3 << 5
        assert calls == [10]
        context.cached_constant('three', 12, compute)
        assert calls == [10, 15]


class TestValue:

    def test_new_is_zero(self, new):
        value = new()
        assert value.is_zero() and value.is_finite()
        assert not value.is_nan() and not value.is_inf()
        assert not value.sign
        assert value.n_limbs == 0
        assert value.number == make_zero(False)

    @pytest.mark.parametrize('native, sign, expn, limbs', (
        (1.0, False, 1, (1 << 63, )),
        (3.0, False, 2, (3 << 62, )),
        (-0.75, True, 0, (3 << 62, )),
        (2 ** 70 + 1, False, 71, (1 << 57, 1 << 63)),
    ))
    def test_limbs(self, new, native, sign, expn, limbs):
        value = new(native)
        assert value.sign == sign
        assert value.expn == expn
        assert value.limbs == limbs
        assert value.n_limbs == len(limbs)

    def test_buffer_follows_value(self, new, allocator):
        value = new()
        set_from_native(value, 2 ** 200 - 1)
        assert value.n_limbs == 4
        assert allocator.bytes_in_use == 32
        set_from_native(value, 5)
        assert value.n_limbs == 1
        assert allocator.bytes_in_use == 8
        value.set_zero(True)
        assert value.is_zero() and value.sign
        assert allocator.bytes_in_use == 0

    @pytest.mark.parametrize('native', (0.0, -0.0, 1.0, -2.5, 0.1, 1e300, 5e-324,
                                        float('inf'), float('-inf')))
    def test_float_round_trip(self, new, native):
        value = new(native)
        result, status = value.get_float64()
        assert status == 0
        assert result == native
        assert math.copysign(1.0, result) == math.copysign(1.0, native)

    def test_nan(self, new):
        value = new(float('nan'))
        assert value.is_nan()
        assert math.isnan(value.to_float())
        assert value.n_limbs == 0

    @pytest.mark.parametrize('rounding, expected', (
        (ROUND_HALF_EVEN, float('inf')),
        (ROUND_DOWN, 1.7976931348623157e308),
        (ROUND_CEILING, float('inf')),
        (ROUND_FLOOR, 1.7976931348623157e308),
    ))
    def test_to_float_overflow(self, new, rounding, expected):
        value = new(2 ** 2000)
        result, status = value.get_float64(rounding)
        assert result == expected
        assert status == Status.OVERFLOW | Status.INEXACT

    def test_to_float_rounds(self, new):
        value = new(2 ** 53 + 1)
        assert value.get_float64() == (2.0 ** 53, Status.INEXACT)
        assert value.to_float(ROUND_UP) == 2.0 ** 53 + 2

    def test_to_float_subnormal(self, new):
        value = new()
        value.store(Number(False, -1080, 1))
        result, status = value.get_float64()
        assert result == 0.0
        assert status == Status.UNDERFLOW | Status.INEXACT
        assert value.to_float(ROUND_UP) == 5e-324

    def test_assign(self, new):
        src = new(-7.25)
        dst = new()
        assert dst.assign(src) == 0
        assert dst.number == src.number
        src.set_float64(1.0)
        assert dst.to_float() == -7.25

    def test_destroy(self, new, context, allocator):
        value = new(1.5)
        value.destroy()
        assert not value.is_alive
        assert allocator.bytes_in_use == 0
        assert context.live_values == 0
        with pytest.raises(ValueError):
            value.number
        with pytest.raises(ValueError):
            value.set_float64(1.0)
        value.destroy()
        assert repr(value) == '<Value destroyed>'

    def test_mem_error(self):
        with Context(LimitedAllocator(8)) as context:
            value = context.create()
            assert value.store(from_int(3)) == 0
            assert value.store(from_int(2 ** 100 - 1)) == Status.MEM_ERROR
            assert value.is_nan()
            assert value.n_limbs == 0
            assert context.allocator.bytes_in_use == 0
            # Specials need no memory
            assert value.set_zero() == 0
            assert value.store(make_infinity(True)) == 0
            assert value.is_inf() and value.sign

    @pytest.mark.parametrize('lhs, rhs, result', (
        (1.0, 2.0, Compare.LESS_THAN),
        (2.0, 1.0, Compare.GREATER_THAN),
        (-1.0, -1.0, Compare.EQUAL),
        (0.0, -0.0, Compare.EQUAL),
        (-1.0, 0.0, Compare.LESS_THAN),
        (float('inf'), 1e308, Compare.GREATER_THAN),
        (float('-inf'), float('-inf'), Compare.EQUAL),
        (float('nan'), 1.0, Compare.UNORDERED),
        (1.0, float('nan'), Compare.UNORDERED),
        (float('nan'), float('nan'), Compare.UNORDERED),
    ))
    def test_compare(self, new, lhs, rhs, result):
        assert new(lhs).compare(new(rhs)) == result

    def test_number_snapshot(self, new):
        value = new(6.5)
        assert value.number == from_float(6.5)
        assert value.number == Number(False, -1, 13)
        value.store(NAN)
        assert value.number == NAN

    def test_repr(self, new):
        assert repr(new(1.5)) == '<Value Number(+0x3p-1)>'
        assert repr(new(-0.0)) == '<Value Number(-0)>'
