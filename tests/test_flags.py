import pytest

from arbfloat import *


class TestExponentBits:

    @pytest.mark.parametrize('n', (3, 8, 11, 15, 32, 60, 61, 62))
    def test_round_trip(self, n):
        assert get_exp_bits(set_exp_bits(n)) == n

    def test_default_is_maximal(self):
        assert get_exp_bits(0) == EXP_BITS_MAX
        assert set_exp_bits(EXP_BITS_MAX) == 0

    def test_62_bits(self):
        assert set_exp_bits(62) == EXP_BITS_MASK << EXP_BITS_SHIFT

    @pytest.mark.parametrize('n', (0, 2, 63, 100))
    def test_out_of_range(self, n):
        with pytest.raises(ValueError):
            set_exp_bits(n)

    @pytest.mark.parametrize('n, e_min, e_max', (
        (8, -125, 128),
        (11, -1021, 1024),
        (15, -16381, 16384),
    ))
    def test_exponent_range(self, n, e_min, e_max):
        assert exponent_range(set_exp_bits(n)) == (e_min, e_max)

    def test_flags_do_not_disturb_range(self):
        flags = set_exp_bits(8) | FLAG_SUBNORMAL | ROUND_UP
        assert exponent_range(flags) == (-125, 128)
        assert get_rounding(flags) == ROUND_UP


class TestFlagBundle:

    def test_default(self):
        bundle = FlagBundle()
        assert int(bundle) == 0
        assert bundle.rounding == ROUND_HALF_EVEN
        assert bundle.exp_bits is None
        assert not bundle.subnormal

    @pytest.mark.parametrize('rounding', list(Rounding))
    @pytest.mark.parametrize('exp_bits', (None, 5, 8, 11, 62))
    @pytest.mark.parametrize('subnormal', (False, True))
    def test_round_trip(self, rounding, exp_bits, subnormal):
        bundle = FlagBundle(rounding=rounding, exp_bits=exp_bits, subnormal=subnormal)
        flags = int(bundle)
        assert FlagBundle.from_flags(flags) == bundle
        assert get_rounding(flags) == rounding
        assert bool(flags & FLAG_SUBNORMAL) == subnormal

    def test_extra_bits(self):
        bundle = FlagBundle(rounding=ROUND_FLOOR, extra=FTOA_FORMAT_FREE | FTOA_FORCE_EXP)
        flags = int(bundle)
        assert flags & FTOA_FORMAT_MASK == FTOA_FORMAT_FREE
        assert flags & FTOA_FORCE_EXP
        assert FlagBundle.from_flags(flags).extra == FTOA_FORMAT_FREE | FTOA_FORCE_EXP

    def test_rounding_converted(self):
        assert FlagBundle(rounding=3).rounding is ROUND_CEILING

    def test_bad_exp_bits(self):
        with pytest.raises(ValueError):
            FlagBundle(exp_bits=70)

    def test_replace(self):
        bundle = FlagBundle(exp_bits=8)
        other = bundle.replace(subnormal=True)
        assert other.exp_bits == 8 and other.subnormal
        assert not bundle.subnormal

    def test_frozen(self):
        bundle = FlagBundle()
        with pytest.raises(AttributeError):
            bundle.rounding = ROUND_UP


class TestStatus:

    def test_values(self):
        assert Status.INVALID_OP == 1
        assert Status.DIVIDE_ZERO == 2
        assert Status.OVERFLOW == 4
        assert Status.UNDERFLOW == 8
        assert Status.INEXACT == 16
        assert Status.MEM_ERROR == 32

    def test_numeric(self):
        status = Status.MEM_ERROR | Status.INEXACT
        assert status.numeric() == Status.INEXACT
        assert not Status.MEM_ERROR & Status.NUMERIC

    def test_euclidean_selector(self):
        assert DIVREM_EUCLIDEAN == ROUND_FAITHFUL == 6


class TestPrecision:

    @pytest.mark.parametrize('prec', (PREC_MIN, 53, 113, PREC_MAX, PREC_INF))
    def test_valid(self, prec):
        check_prec(prec)

    @pytest.mark.parametrize('prec', (-1, 0, 1, PREC_INF + 1))
    def test_out_of_range(self, prec):
        with pytest.raises(ValueError):
            check_prec(prec)

    @pytest.mark.parametrize('prec', (53.0, '53', None))
    def test_type(self, prec):
        with pytest.raises(TypeError):
            check_prec(prec)

    @pytest.mark.parametrize('n_digits, bits', (
        (0, 0),
        (1, 4),
        (3, 10),
        (15, 50),
        (16, 54),
        (17, 57),
        (34, 113),
    ))
    def test_digits_to_bits(self, n_digits, bits):
        assert digits_to_bits(n_digits) == bits
