"""
Tests for the tree membership circuit and its key lifecycle.
"""

import random

import pytest

from circuits.membership import TreeMembershipCircuit
from circuits.r1cs import ConstraintSystem
from common.datastructures import AuthPath
from common.errors import CommitmentMismatchError, IndexOutOfRangeError, InvalidHeightError, SynthesisError
from crypto import CURVE_ORDER
from fixtures.credentials import SMALL_HEIGHT, TREE_PARAMS
from primitives.mimc import MiMCTwoToOne
from trees import ComTree, gen_tree_memb_crs, verify_tree_memb

COMS = {0: 1111, 5: 5555, 6: 6666}


@pytest.fixture(scope="module")
def tree():
    return ComTree.new(TREE_PARAMS, SMALL_HEIGHT, COMS)


@pytest.fixture(scope="module")
def proof(tree, tree_keys):
    pk, _ = tree_keys
    return tree.prove_membership(pk, 5, 5555, random.Random(21))


def test_circuit_satisfied_by_real_path(tree):
    path = tree.generate_proof(6, 6666)
    circuit = TreeMembershipCircuit.for_proving(MiMCTwoToOne, TREE_PARAMS, SMALL_HEIGHT, 6666, tree.root(), path)
    cs = ConstraintSystem()
    circuit.generate_constraints(cs)
    assert cs.is_satisfied()
    assert cs.input_assignment == [6666, tree.root()]


def test_circuit_rejects_foreign_commitment(tree):
    path = tree.generate_proof(6, 6666)
    circuit = TreeMembershipCircuit.for_proving(MiMCTwoToOne, TREE_PARAMS, SMALL_HEIGHT, 7777, tree.root(), path)
    cs = ConstraintSystem()
    circuit.generate_constraints(cs)
    assert cs.which_is_unsatisfied() == "leaf/contains_attrs_com"


def test_circuit_rejects_swapped_inner_pair(tree):
    path = tree.generate_proof(5, 5555)
    l, r = path.inner_pairs[0]
    swapped = AuthPath(path.leaf_pair, [(r, l)] + path.inner_pairs[1:])
    circuit = TreeMembershipCircuit.for_proving(MiMCTwoToOne, TREE_PARAMS, SMALL_HEIGHT, 5555, tree.root(), swapped)
    cs = ConstraintSystem()
    circuit.generate_constraints(cs)
    assert not cs.is_satisfied()


def test_setup_and_proving_shapes_agree(tree):
    setup_cs = ConstraintSystem()
    TreeMembershipCircuit.for_setup(MiMCTwoToOne, TREE_PARAMS, SMALL_HEIGHT).generate_constraints(setup_cs)
    prove_cs = ConstraintSystem()
    path = tree.generate_proof(0, 1111)
    TreeMembershipCircuit.for_proving(MiMCTwoToOne, TREE_PARAMS, SMALL_HEIGHT, 1111, tree.root(), path) \
        .generate_constraints(prove_cs)
    assert setup_cs.shape() == prove_cs.shape()


def test_membership_proof_verifies(tree, tree_keys, proof):
    _, vk = tree_keys
    assert verify_tree_memb(vk, proof, 5555, tree.root())


def test_flipped_bits_fail(tree, tree_keys, proof):
    _, vk = tree_keys
    assert not verify_tree_memb(vk, proof, 5555 ^ 1, tree.root())
    assert not verify_tree_memb(vk, proof, 5555, tree.root() ^ (1 << 7))


def test_non_canonical_inputs_fail(tree, tree_keys, proof):
    _, vk = tree_keys
    assert not verify_tree_memb(vk, proof, 5555 + CURVE_ORDER, tree.root())


def test_empty_slot_membership(tree, tree_keys):
    pk, vk = tree_keys
    # 空位置的默认值 0 同样在树中
    p = tree.prove_membership(pk, 1, 0, random.Random(3))
    assert verify_tree_memb(vk, p, 0, tree.root())


def test_generate_proof_errors_propagate(tree, tree_keys):
    pk, _ = tree_keys
    with pytest.raises(CommitmentMismatchError):
        tree.prove_membership(pk, 5, 5556)
    with pytest.raises(IndexOutOfRangeError):
        tree.prove_membership(pk, 1 << SMALL_HEIGHT, 5555)


def test_proving_key_for_other_height(tree_keys):
    pk, _ = tree_keys
    taller = ComTree.new(TREE_PARAMS, SMALL_HEIGHT + 1, COMS)
    with pytest.raises(SynthesisError):
        taller.prove_membership(pk, 5, 5555)


def test_verifying_key_for_other_height(tree_keys):
    _, vk_small = tree_keys
    pk2, vk2 = gen_tree_memb_crs(TREE_PARAMS, 2, rng=random.Random(31))
    small_tree = ComTree.new(TREE_PARAMS, 2, {1: 5555})
    proof2 = small_tree.prove_membership(pk2, 1, 5555, random.Random(32))
    assert verify_tree_memb(vk2, proof2, 5555, small_tree.root())
    assert not verify_tree_memb(vk_small, proof2, 5555, small_tree.root())


def test_gen_crs_invalid_height():
    with pytest.raises(InvalidHeightError):
        gen_tree_memb_crs(TREE_PARAMS, 1)
