import math

import pytest

import arbfloat
from arbfloat import *
from arbfloat.number import Number, from_float


DOUBLE = set_exp_bits(11) | FLAG_SUBNORMAL
SINGLE = set_exp_bits(8)


@pytest.fixture
def default_context():
    teardown()
    context = initialize()
    yield context
    teardown()


class TestOp:

    @pytest.mark.parametrize('code, op', (
        ('+', Op.ADD),
        ('s', Op.SQRT),
        (ord('E'), Op.EXP),
        (ord('3'), Op.CONST_PI),
        (Op.DIVREM, Op.DIVREM),
    ))
    def test_from_code(self, code, op):
        assert Op.from_code(code) is op

    @pytest.mark.parametrize('code', ('?', 'add', '', -1, 0x110000, ord('x')))
    def test_unknown(self, code):
        assert Op.from_code(code) is None

    @pytest.mark.parametrize('code', (1.5, None, b'+', True))
    def test_bad_type(self, code):
        with pytest.raises(TypeError):
            Op.from_code(code)

    @pytest.mark.parametrize('op, arity', (
        (Op.ADD, Arity.BINARY),
        (Op.ATAN2, Arity.BINARY),
        (Op.SQRT, Arity.UNARY),
        (Op.SIGN, Arity.UNARY),
        (Op.CONST_PI, Arity.NULLARY),
        (Op.EPSILON, Arity.NULLARY),
        (Op.REM, Arity.TWO_RESULT),
    ))
    def test_arity(self, op, arity):
        assert op.arity is arity


class TestApply:

    @pytest.mark.parametrize('op, a, b, result, status', (
        ('+', 1.5, 1.5, 3.0, 0),
        ('-', 1.0, 4.0, -3.0, 0),
        ('*', -2.5, 4.0, -10.0, 0),
        ('/', 1.0, 3.0, 1 / 3, Status.INEXACT),
        ('/', 1.0, 0.0, math.inf, Status.DIVIDE_ZERO),
        ('|', 12.0, 3.0, 15.0, 0),
        ('^', 12.0, 10.0, 6.0, 0),
        ('&', 12.0, 10.0, 8.0, 0),
        ('P', 2.0, 10.0, 1024.0, 0),
        ('5', 1.0, 1.0, math.pi / 4, Status.INEXACT),
    ))
    def test_binary(self, new, op, a, b, result, status):
        value = new()
        assert apply(op, value, new(a), new(b)) == status
        assert value.to_float() == result

    @pytest.mark.parametrize('op, a, result, status', (
        ('s', 4.0, 2.0, 0),
        ('s', 2.0, math.sqrt(2), Status.INEXACT),
        ('s', -1.0, math.nan, Status.INVALID_OP),
        ('i', 2.5, 2.0, Status.INEXACT),
        ('n', 1.5, -1.5, 0),
        ('b', -1.5, 1.5, 0),
        ('g', -7.0, -1.0, 0),
        ('E', 1.0, math.e, Status.INEXACT),
        ('L', 1.0, 0.0, 0),
        ('S', 1.0, math.sin(1.0), Status.INEXACT),
        ('C', 0.0, 1.0, 0),
        ('T', 0.0, 0.0, 0),
        ('4', 1.0, math.pi / 4, Status.INEXACT),
        ('6', 1.0, math.pi / 2, Status.INEXACT),
        ('7', 1.0, 0.0, 0),
    ))
    def test_unary(self, new, op, a, result, status):
        value = new()
        assert apply(op, value, new(a)) == status
        if math.isnan(result):
            assert value.is_nan()
        else:
            assert value.to_float() == result

    @pytest.mark.parametrize('op, result', (
        ('3', math.pi),
        ('2', math.log(2)),
    ))
    def test_constants(self, new, op, result):
        value = new()
        assert apply(op, value) == Status.INEXACT
        assert value.to_float() == result

    def test_round(self, new):
        value = new(1 / 3)
        assert apply('r', value, prec=24, flags=SINGLE) == Status.INEXACT
        assert value.number == Number(False, -25, 11184811)

    def test_code_point(self, new):
        value = new()
        assert apply(ord('+'), value, new(1), new(2)) == 0
        assert value.to_float() == 3.0

    def test_unknown_opcode(self, new):
        value = new(1.5)
        assert apply('?', value, new(2.0), new(3.0)) == Status.INVALID_OP
        assert value.to_float() == 1.5
        assert apply(ord('x'), value, new(2.0)) == Status.INVALID_OP
        assert value.to_float() == 1.5
        # The opcode is checked before the precision
        assert apply('?', value, new(2.0), prec=1) == Status.INVALID_OP
        assert value.to_float() == 1.5

    @pytest.mark.parametrize('op', ('%', 'd', Op.REM))
    def test_two_result_ops_rejected(self, new, op):
        value = new(1.5)
        assert apply(op, value, new(7), new(2)) == Status.INVALID_OP
        assert value.to_float() == 1.5

    def test_missing_operand(self, new):
        with pytest.raises(TypeError):
            apply('+', new(), new(1.0))
        with pytest.raises(TypeError):
            apply('s', new())
        with pytest.raises(TypeError):
            apply('+', new(), 1.0, new(2.0))

    def test_bad_arguments(self, new):
        with pytest.raises(TypeError):
            apply('+', 1.0, new(1.0), new(2.0))
        with pytest.raises(ValueError):
            apply('+', new(), new(1.0), new(2.0), prec=1)

    @pytest.mark.parametrize('op, result', (
        ('n', -2.0), ('b', 2.0), ('i', 2.0), ('r', 2.0),
    ))
    def test_in_place(self, new, op, result):
        value = new(-2.0) if op == 'b' else new(2.0)
        assert apply(op, value) == 0
        assert value.to_float() == result

    def test_aliased_operands(self, new):
        value = new(3.0)
        assert apply('*', value, value, value) == 0
        assert value.to_float() == 9.0
        assert apply('-', value, value, value) == 0
        assert value.is_zero() and not value.sign

    def test_sqrtrem(self, new):
        root, remainder = new(), new()
        assert apply('m', root, new(10.5), remainder) == Status.INEXACT
        assert root.to_float() == 3.0
        assert remainder.to_float() == 1.5
        assert apply('m', root, new(16.0)) == 0
        assert root.to_float() == 4.0

    def test_precision(self, new):
        value = new()
        apply('/', value, new(1.0), new(3.0), prec=24, flags=SINGLE)
        assert value.number == Number(False, -25, 11184811)

    def test_mem_error(self):
        with Context(LimitedAllocator(16)) as context:
            a, b, result = context.create(), context.create(), context.create()
            set_from_native(a, 1)
            set_from_native(b, 3)
            status = apply('/', result, a, b, prec=200)
            assert status == Status.MEM_ERROR | Status.INEXACT
            assert result.is_nan()


class TestLimits:

    @pytest.mark.parametrize('op, flags, value', (
        ('Z', SINGLE, 3.4028234663852886e38),
        ('z', SINGLE, 2.0 ** -126),
        ('z', SINGLE | FLAG_SUBNORMAL, 2.0 ** -149),
        ('y', SINGLE, 2.0 ** -23),
    ))
    def test_single(self, new, op, flags, value):
        result = new()
        assert apply(op, result, prec=24, flags=flags) == 0
        assert result.to_float() == value

    @pytest.mark.parametrize('op, value', (
        ('Z', 1.7976931348623157e308),
        ('z', 5e-324),
        ('y', 2.220446049250313e-16),
    ))
    def test_double(self, new, op, value):
        result = new()
        assert apply(op, result, prec=53, flags=DOUBLE) == 0
        assert result.to_float() == value

    def test_prec_inf(self, new):
        result = new()
        assert apply('Z', result, prec=PREC_INF) == Status.INVALID_OP
        assert result.is_nan()

    def test_functions(self):
        assert max_value(8, 24) == from_float(3.4028234663852886e38)
        assert min_value(11, 53) == from_float(2.0 ** -1022)
        assert min_value(11, 53, subnormal=True) == from_float(5e-324)
        assert epsilon(113) == Number(False, -112, 1)
        with pytest.raises(ValueError):
            max_value(2, 24)
        with pytest.raises(ValueError):
            epsilon(1)


class TestApply2:

    @pytest.mark.parametrize('a, b, rounding, remainder', (
        (7, 2, ROUND_HALF_EVEN, -1),
        (5, 2, ROUND_HALF_EVEN, 1),
        (7, 2, ROUND_DOWN, 1),
        (-7, 2, ROUND_DOWN, -1),
        (-7, 2, ROUND_FLOOR, 1),
        (7, -2, ROUND_FLOOR, -1),
        (-7, 2, DIVREM_EUCLIDEAN, 1),
        (-7, -2, DIVREM_EUCLIDEAN, 1),
        (6, 3, ROUND_DOWN, 0),
    ))
    def test_rem(self, new, a, b, rounding, remainder):
        result = new()
        assert apply2('%', result, new(a), new(b), 53, 0, rounding) == 0
        assert result.to_float() == remainder

    @pytest.mark.parametrize('a, b, rounding, quotient, remainder', (
        (7, 2, ROUND_DOWN, 3, 1),
        (-7, 2, ROUND_DOWN, -3, -1),
        (-7, 2, ROUND_FLOOR, -4, 1),
        (-7, 2, DIVREM_EUCLIDEAN, -4, 1),
        (-7, -2, DIVREM_EUCLIDEAN, 4, 1),
        (7, 2, ROUND_HALF_EVEN, 4, -1),
        (7.5, 0.5, ROUND_DOWN, 15, 0),
        (1, 8, ROUND_CEILING, 1, -7),
    ))
    def test_divrem(self, new, a, b, rounding, quotient, remainder):
        q, r = new(), new()
        assert apply2('d', r, new(a), new(b), 53, 0, rounding, q) == 0
        assert q.to_float() == quotient
        assert r.to_float() == remainder

    def test_divrem_needs_quotient(self, new):
        with pytest.raises(TypeError):
            apply2('d', new(), new(7), new(2), 53, 0, ROUND_DOWN)

    @pytest.mark.parametrize('a, b', ((math.inf, 1.0), (1.0, 0.0)))
    def test_invalid(self, new, a, b):
        q, r = new(), new()
        assert apply2(Op.DIVREM, r, new(a), new(b), 53, 0, ROUND_DOWN, q) \
            == Status.INVALID_OP
        assert q.is_nan() and r.is_nan()

    def test_sqrtrem(self, new):
        root, remainder = new(), new()
        assert apply2('m', root, new(17), None, 53, 0, ROUND_DOWN, remainder) \
            == Status.INEXACT
        assert root.to_float() == 4.0
        assert remainder.to_float() == 1.0

    @pytest.mark.parametrize('op', ('+', 's', '?'))
    def test_other_ops(self, new, op):
        result = new(1.5)
        assert apply2(op, result, new(7), new(2), 53, 0, ROUND_DOWN) == Status.INVALID_OP
        assert result.to_float() == 1.5
        assert apply2(op, result, new(7), new(2), 1, 0, ROUND_DOWN) == Status.INVALID_OP
        assert result.to_float() == 1.5


class TestApi:

    def test_initialize(self, default_context):
        assert get_default_context() is default_context
        assert ensure_default_context() is default_context
        assert isinstance(default_context.allocator, HeapAllocator)
        with pytest.raises(RuntimeError):
            initialize()

    def test_teardown(self, default_context):
        value = create()
        assert value.context is default_context
        teardown()
        assert default_context.closed
        assert not value.is_alive
        with pytest.raises(RuntimeError):
            get_default_context()
        with pytest.raises(RuntimeError):
            create()
        teardown()

    def test_ensure_default_context(self):
        teardown()
        context = ensure_default_context()
        assert get_default_context() is context
        teardown()

    def test_initialize_allocator(self):
        teardown()
        allocator = LimitedAllocator(64)
        assert initialize(allocator).allocator is allocator
        teardown()

    def test_value_functions(self, context):
        a, b = create(context), create(context)
        assert is_zero(a) and is_finite(a) and not is_nan(a)
        assert set_from_native(a, 2.5) == 0
        assert to_native(a) == 2.5
        assert assign(b, a) == 0
        assert compare(a, b) == Compare.EQUAL
        set_from_native(b, -(2 ** 64))
        assert compare(b, a) == Compare.LESS_THAN
        set_from_native(b, math.nan)
        assert is_nan(b) and not is_finite(b)
        assert compare(a, b) == Compare.UNORDERED
        destroy(a)
        assert not a.is_alive
        assert context.live_values == 1

    def test_to_native_rounding(self, new):
        value = new(2 ** 53 + 1)
        assert to_native(value) == 2.0 ** 53
        assert to_native(value, ROUND_CEILING) == 2.0 ** 53 + 2

    @pytest.mark.parametrize('native', (True, '1.5', None, 1j))
    def test_set_from_native_type(self, new, native):
        with pytest.raises(TypeError):
            set_from_native(new(), native)

    @pytest.mark.parametrize('text, radix, value, status', (
        ('0.1', 10, 0.1, Status.INEXACT),
        ('-1.5', 10, -1.5, 0),
        ('0x10', 0, 16.0, 0),
        ('0x1p-1074', 0, 5e-324, 0),
        ('z', 36, 35.0, 0),
        ('1e400', 10, math.inf, Status.OVERFLOW | Status.INEXACT),
        ('-inf', 10, -math.inf, 0),
    ))
    def test_parse(self, new, text, radix, value, status):
        result = new()
        assert parse(result, text, radix, flags=DOUBLE) == status
        assert result.to_float() == value

    def test_parse_malformed(self, new):
        result = new(1.0)
        assert parse(result, '1.x') == Status.INVALID_OP
        assert result.is_nan()

    def test_parse_mem_error(self):
        with Context(LimitedAllocator(8)) as context:
            result = context.create()
            assert parse(result, str(2 ** 100 - 1), prec=PREC_INF) == Status.MEM_ERROR
            assert result.is_nan()

    @pytest.mark.parametrize('native, radix, prec, flags, text', (
        (0.1, 10, 53, FTOA_FORMAT_FREE_MIN, '0.1'),
        (-1.5, 10, 4, FTOA_FORMAT_FIXED, '-1.500'),
        (3.0, 16, 53, FTOA_FORMAT_FREE_MIN | FTOA_FORCE_EXP | FTOA_ADD_PREFIX, '0x1.8p1'),
        (2.0 / 3, 10, 3, FTOA_FORMAT_FRAC, '0.667'),
        (math.inf, 10, 53, FTOA_FORMAT_FREE_MIN | FTOA_JS_QUIRKS, 'Infinity'),
        (5e-324, 10, 53, set_exp_bits(11) | FLAG_SUBNORMAL | FTOA_FORMAT_FREE_MIN, '5e-324'),
    ))
    def test_format_value(self, new, native, radix, prec, flags, text):
        with format_value(new(native), radix, prec, flags) as buffer:
            assert buffer == text

    def test_format_default(self, new):
        with format_value(new(0.5)) as buffer:
            assert buffer.text == '0.5' + '0' * 52

    def test_format_round_trip(self, new):
        value, result = new(math.pi), new()
        with format_value(value, 10, 53, FTOA_FORMAT_FREE_MIN) as buffer:
            assert parse(result, buffer.text) == Status.INEXACT
        assert result.number == value.number

    def test_format_allocation_failure(self):
        with Context(LimitedAllocator(8)) as context:
            value = context.create()
            set_from_native(value, 1.0)
            with pytest.raises(AllocationError):
                format_value(value, 10, 20, FTOA_FORMAT_FIXED)

    def test_package(self):
        assert arbfloat.__version__
        assert 'BigFloat' in arbfloat.__all__
        assert 'apply2' in arbfloat.__all__
