"""
Tests for the Groth16 proof system on a toy circuit: x^3 + x + 5 == out.
"""

import random

import pytest
from py_ecc.optimized_bn128 import field_modulus

from common.datastructures import Proof
from common.errors import SynthesisError, UnsatisfiedConstraintError
from crypto import B2_COEFF, CURVE_ORDER, FQ, FQ2, G1_IDENTITY, add, g1_generator, g2_in_subgroup, g2_on_curve
from snark.groth16 import Groth16


class CubicCircuit:

    def __init__(self, x: int, out: int, is_setup: bool = False):
        self.x = x
        self.out = out
        self.is_setup = is_setup

    def generate_constraints(self, cs):
        out = cs.alloc_input(self.out, "out")
        x = cs.alloc_witness(self.x, "x")
        x2 = cs.mul(x, x, "x2")
        x3 = cs.mul(x2, x, "x3")
        cs.enforce_equal(x3 + x + 5, out, "result")


class TwoCubesCircuit(CubicCircuit):

    def generate_constraints(self, cs):
        super().generate_constraints(cs)
        y = cs.alloc_witness(self.x, "y")
        cs.mul(y, y, "y2")


def _fq2_sqrt(a):
    # q = 3 (mod 4) 时 Fq2 上的开方
    q = field_modulus
    minus_one = -FQ2.one()
    a1 = a ** ((q - 3) // 4)
    alpha = a1 * a1 * a
    if alpha ** q * alpha == minus_one:
        return None
    x0 = a1 * a
    if alpha == minus_one:
        return FQ2([0, 1]) * x0
    return (FQ2.one() + alpha) ** ((q - 1) // 2) * x0


def _twist_point_outside_g2():
    """扭曲曲线 y^2 = x^3 + b2 上的一个点；余因子很大，随手找到的点几乎不可能落在 r 阶子群中。"""
    for k in range(1, 100):
        x = FQ2([k, 1])
        rhs = x ** 3 + B2_COEFF
        y = _fq2_sqrt(rhs)
        if y is not None and y * y == rhs:
            return (x, y, FQ2.one())
    raise AssertionError("no twist point found")


@pytest.fixture(scope="module")
def keys():
    pk = Groth16.generate_parameters(CubicCircuit(0, 0, is_setup=True), random.Random(11), label="cubic")
    return pk, Groth16.prepare_verifying_key(pk.vk)


@pytest.fixture(scope="module")
def proof(keys):
    pk, _ = keys
    return Groth16.create_proof(CubicCircuit(3, 35), pk, random.Random(12))


def test_valid_proof_verifies(keys, proof):
    _, pvk = keys
    assert Groth16.verify_proof(pvk, proof, [35])


def test_wrong_public_input_fails(keys, proof):
    _, pvk = keys
    assert not Groth16.verify_proof(pvk, proof, [36])


def test_wrong_input_count_fails(keys, proof):
    _, pvk = keys
    assert not Groth16.verify_proof(pvk, proof, [])
    assert not Groth16.verify_proof(pvk, proof, [35, 0])


def test_non_canonical_input_fails(keys, proof):
    _, pvk = keys
    assert not Groth16.verify_proof(pvk, proof, [35 + CURVE_ORDER])
    assert not Groth16.verify_proof(pvk, proof, ["35"])


def test_tampered_proof_fails(keys, proof):
    _, pvk = keys
    tampered = Proof(a=add(proof.a, g1_generator), b=proof.b, c=proof.c)
    assert not Groth16.verify_proof(pvk, tampered, [35])

    off_curve = Proof(a=(FQ(1), FQ(3), FQ(1)), b=proof.b, c=proof.c)
    assert not Groth16.verify_proof(pvk, off_curve, [35])

    assert not Groth16.verify_proof(pvk, Proof(a=G1_IDENTITY, b=proof.b, c=proof.c), [35])


def test_proof_b_outside_g2_subgroup_fails(keys, proof):
    _, pvk = keys
    point = _twist_point_outside_g2()
    assert g2_on_curve(point)
    assert not g2_in_subgroup(point)
    assert g2_in_subgroup(proof.b)
    assert not Groth16.proof_is_well_formed(Proof(a=proof.a, b=point, c=proof.c))
    assert not Groth16.verify_proof(pvk, Proof(a=proof.a, b=point, c=proof.c), [35])


def test_prepared_key_is_reused(keys):
    pk, pvk = keys
    assert Groth16.as_prepared(pvk) is pvk
    assert Groth16.as_prepared(pk.vk).alpha_g1_beta_g2 == pvk.alpha_g1_beta_g2


def test_proofs_are_rerandomized(keys, proof):
    pk, pvk = keys
    other = Groth16.create_proof(CubicCircuit(3, 35), pk, random.Random(99))
    assert other.a != proof.a
    assert Groth16.verify_proof(pvk, other, [35])


def test_serialized_proof_verifies(keys, proof):
    _, pvk = keys
    restored = Proof.from_dict(proof.to_dict())
    assert Groth16.verify_proof(pvk, restored, [35])


def test_unsatisfied_witness_is_rejected(keys):
    pk, _ = keys
    with pytest.raises(UnsatisfiedConstraintError) as exc:
        Groth16.create_proof(CubicCircuit(4, 35), pk, random.Random(1))
    assert exc.value.constraint == "result"


def test_setup_circuit_cannot_be_proved(keys):
    pk, _ = keys
    with pytest.raises(SynthesisError):
        Groth16.create_proof(CubicCircuit(3, 35, is_setup=True), pk)


def test_shape_mismatch_is_rejected(keys):
    pk, _ = keys
    with pytest.raises(SynthesisError):
        Groth16.create_proof(TwoCubesCircuit(3, 35), pk)


def test_key_metadata(keys):
    pk, pvk = keys
    assert pk.shape == (1, 3, 5)
    assert pk.label == "cubic"
    assert pvk.vk.num_public_inputs == 1
