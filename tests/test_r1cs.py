"""
Tests for the constraint system and gadgets.
"""

import pytest

from circuits.gadgets import (
    enforce_one_of,
    is_less_or_equal,
    mimc7_gadget,
    mimc_hash_gadget,
    to_bits_le,
)
from circuits.r1cs import ONE, ConstraintSystem, LinComb, SynthesisMode
from common.errors import FieldConversionError
from crypto import CURVE_ORDER
from utils import mimc7_permute, mimc_constants, mimc_hash


def test_lincomb_arithmetic():
    cs = ConstraintSystem()
    x = cs.alloc_witness(3, "x")
    y = cs.alloc_witness(4, "y")

    assert cs.value(x + y) == 7
    assert cs.value(x - y) == CURVE_ORDER - 1
    assert cs.value(2 * x + 5) == 11
    assert cs.value(10 - y) == 6
    assert (x - x).terms == {}
    assert LinComb.constant(CURVE_ORDER).terms == {}
    assert LinComb.constant(9).terms == {ONE: 9}

    with pytest.raises(TypeError):
        x * y


def test_mul_by_constant_adds_no_constraint():
    cs = ConstraintSystem()
    x = cs.alloc_witness(6, "x")
    z = cs.mul(x, LinComb.constant(7))
    assert cs.num_constraints == 0
    assert cs.value(z) == 42

    w = cs.mul(x, x, "sq")
    assert cs.num_constraints == 1
    assert cs.value(w) == 36
    assert cs.is_satisfied()


def test_alloc_input_rejects_non_canonical_values():
    cs = ConstraintSystem()
    with pytest.raises(FieldConversionError):
        cs.alloc_input(CURVE_ORDER, "too_big")
    with pytest.raises(FieldConversionError):
        cs.alloc_input(-1, "negative")
    with pytest.raises(FieldConversionError):
        cs.alloc_input("12", "string")
    assert cs.num_inputs == 0


def test_unsatisfied_constraint_is_reported_with_namespace():
    cs = ConstraintSystem()
    x = cs.alloc_witness(5, "x")
    with cs.namespace("outer"):
        with cs.namespace("inner"):
            cs.enforce_equal(x, 6, "x_is_six")
    assert cs.which_is_unsatisfied() == "outer/inner/x_is_six"
    assert not cs.is_satisfied()


def test_shape_and_mode():
    cs = ConstraintSystem(SynthesisMode.SETUP)
    assert cs.is_setup()
    cs.alloc_input(1, "a")
    x = cs.alloc_witness(2, "x")
    cs.mul(x, x)
    assert cs.shape() == (1, 2, 1)
    assert cs.full_assignment() == [1, 1, 2, 4]
    assert cs.index_of(("input", 0)) == 1
    assert cs.index_of(("aux", 1)) == 3


def test_enforce_one_of():
    cs = ConstraintSystem()
    x = cs.alloc_witness(11, "x")
    l = cs.alloc_witness(3, "l")
    r = cs.alloc_witness(11, "r")
    enforce_one_of(cs, x, (l, r))
    assert cs.is_satisfied()

    cs = ConstraintSystem()
    x = cs.alloc_witness(12, "x")
    enforce_one_of(cs, x, (cs.alloc_witness(3), cs.alloc_witness(11)))
    assert not cs.is_satisfied()


def test_to_bits_le():
    cs = ConstraintSystem()
    x = cs.alloc_witness(0b1011, "x")
    bits = to_bits_le(cs, x, 4)
    assert [cs.value(b) for b in bits] == [1, 1, 0, 1]
    assert cs.is_satisfied()

    cs = ConstraintSystem()
    to_bits_le(cs, cs.alloc_witness(16, "x"), 4)
    assert cs.which_is_unsatisfied() == "bits/recompose"


@pytest.mark.parametrize("x, y, expected", [
    (1992, 2003, 1),
    (2003, 2003, 1),
    (2010, 2003, 0),
    (0, 0, 1),
    (65535, 0, 0),
])
def test_is_less_or_equal(x, y, expected):
    cs = ConstraintSystem()
    result = is_less_or_equal(cs, cs.alloc_witness(x, "x"), cs.alloc_witness(y, "y"), 16)
    assert cs.value(result) == expected
    assert cs.is_satisfied()


def test_is_less_or_equal_range_checks_inputs():
    cs = ConstraintSystem()
    is_less_or_equal(cs, cs.alloc_witness(1 << 16, "x"), cs.alloc_witness(3, "y"), 16)
    assert not cs.is_satisfied()


def test_mimc_gadgets_match_native_computation():
    constants = mimc_constants(5)
    cs = ConstraintSystem()
    x = cs.alloc_witness(123456789, "x")
    k = cs.alloc_witness(987654321, "k")
    out = mimc7_gadget(cs, x, k, constants)
    assert cs.value(out) == mimc7_permute(123456789, 987654321, constants)
    assert cs.num_constraints == 4 * len(constants)

    elems = [cs.alloc_witness(v) for v in (1, 2, 3)]
    h = mimc_hash_gadget(cs, elems, 77, constants)
    assert cs.value(h) == mimc_hash([1, 2, 3], 77, constants)
    assert cs.is_satisfied()
