"""
Tests for binding the membership and predicate proofs together.
"""

import random
from dataclasses import replace

import pytest

from circuits.predicate import gen_pred_crs, prepare_pred_inputs, prove_pred
from common.datastructures import CredentialBundle
from common.errors import UnsatisfiedConstraintError
from fixtures.credentials import (
    ROOT_SCHEME,
    SMALL_HEIGHT,
    TREE_PARAMS,
    BirthYearChecker,
    NameAndBirthYear,
)
from protocol import (
    check_binding,
    membership_inputs,
    predicate_inputs,
    verify_credential,
)
from trees import ComTree, gen_tree_memb_crs, verify_tree_memb


def _bundle(tree, idx, attrs, tree_pk, pred_pk, checker, rng, nonce=555):
    attrs_com = attrs.commit()
    root = tree.root()
    root_com = ROOT_SCHEME.commit([root], nonce)
    return CredentialBundle(
        membership_proof=tree.prove_membership(tree_pk, idx, attrs_com, rng),
        predicate_proof=prove_pred(pred_pk, checker, attrs, root_com, rng),
        attrs_com=attrs_com,
        root=root,
        root_com=root_com,
        root_com_nonce=nonce,
    )


def test_input_vectors_and_binding(checker):
    memb = membership_inputs(10, 20)
    pred = predicate_inputs(10, 30, checker)
    assert memb == [10, 20]
    assert pred == [10, 30, 2003]
    assert check_binding(memb, pred)
    assert not check_binding(memb, predicate_inputs(11, 30, checker))
    assert not check_binding([], pred)


@pytest.fixture(scope="module")
def setting(tree_keys, pred_keys, checker):
    rng = random.Random(51)
    andrew = NameAndBirthYear.random("Andrew", 1992, rng)
    bob = NameAndBirthYear.random("Bob", 1990, rng)
    tree = ComTree.new(TREE_PARAMS, SMALL_HEIGHT, {2: andrew.commit(), 5: bob.commit()})
    bundle = _bundle(tree, 2, andrew, tree_keys[0], pred_keys[0], checker, rng)
    return tree, andrew, bob, bundle


def test_valid_credential(setting, tree_keys, pred_keys, checker):
    _, _, _, bundle = setting
    assert verify_credential(bundle, tree_keys[1], pred_keys[1], checker, root_commitment=ROOT_SCHEME)


def test_serialized_credential(setting, tree_keys, pred_keys, checker):
    _, _, _, bundle = setting
    restored = CredentialBundle.from_dict(bundle.to_dict())
    assert restored.attrs_com == bundle.attrs_com
    assert verify_credential(restored, tree_keys[1], pred_keys[1], checker, root_commitment=ROOT_SCHEME)


def test_mixed_proofs_break_binding(setting, tree_keys, pred_keys, checker):
    tree, andrew, bob, bundle = setting
    rng = random.Random(52)
    bob_bundle = _bundle(tree, 5, bob, tree_keys[0], pred_keys[0], checker, rng)
    # Andrew 的成员证明 + Bob 的谓词证明：两者各自有效，但引用的承诺不同
    mixed = replace(bundle, predicate_proof=bob_bundle.predicate_proof)
    assert not verify_credential(mixed, tree_keys[1], pred_keys[1], checker, root_commitment=ROOT_SCHEME)
    relabelled = replace(bundle, attrs_com=bob.commit())
    assert not verify_credential(relabelled, tree_keys[1], pred_keys[1], checker, root_commitment=ROOT_SCHEME)


def test_root_commitment_must_open(setting, tree_keys, pred_keys, checker):
    _, _, _, bundle = setting
    assert not verify_credential(replace(bundle, root_com_nonce=556), tree_keys[1], pred_keys[1], checker,
                                 root_commitment=ROOT_SCHEME)
    assert not verify_credential(bundle, tree_keys[1], pred_keys[1], checker)


def test_without_nonce_root_commitment_is_not_opened(setting, tree_keys, pred_keys, checker):
    _, _, _, bundle = setting
    assert verify_credential(replace(bundle, root_com_nonce=None), tree_keys[1], pred_keys[1], checker)


def test_non_canonical_bundle_values(setting, tree_keys, pred_keys, checker):
    _, _, _, bundle = setting
    assert not verify_credential(replace(bundle, root=-1), tree_keys[1], pred_keys[1], checker,
                                 root_commitment=ROOT_SCHEME)


def test_checker_mismatch(setting, tree_keys, pred_keys):
    _, _, _, bundle = setting
    other = BirthYearChecker(reference_year=2030)
    assert not verify_credential(bundle, tree_keys[1], pred_keys[1], other, root_commitment=ROOT_SCHEME)


def test_prepared_inputs_must_match_checker(setting, tree_keys, pred_keys, checker):
    tree, _, _, _ = setting
    rng = random.Random(53)
    lenient = BirthYearChecker(reference_year=2040)
    young = NameAndBirthYear.random("Young", 2010, rng)
    young_tree = tree.copy()
    young_tree.insert(7, young.commit())
    bundle = _bundle(young_tree, 7, young, tree_keys[0], pred_keys[0], lenient, rng)
    lenient_pinput = prepare_pred_inputs(pred_keys[1], lenient)

    assert verify_credential(bundle, tree_keys[1], pred_keys[1], lenient, root_commitment=ROOT_SCHEME,
                             pinput=lenient_pinput)
    # 2010 年出生只满足宽松谓词；验证方指定严格谓词时，宽松的预处理输入不能替它作证
    assert not verify_credential(bundle, tree_keys[1], pred_keys[1], checker, root_commitment=ROOT_SCHEME,
                                 pinput=lenient_pinput)
    assert not verify_credential(bundle, tree_keys[1], pred_keys[1], checker, root_commitment=ROOT_SCHEME)


@pytest.mark.slow
def test_end_to_end_height_32():
    rng = random.Random(2024)
    height = 32
    checker = BirthYearChecker(reference_year=2024)
    tree_pk, tree_vk = gen_tree_memb_crs(TREE_PARAMS, height, rng=rng)
    pred_pk, pred_vk = gen_pred_crs(checker, NameAndBirthYear, rng=rng)

    andrew = NameAndBirthYear.random("Andrew", 1992, rng)
    tree = ComTree.empty(TREE_PARAMS, height)
    tree.insert(17, andrew.commit())

    bundle = _bundle(tree, 17, andrew, tree_pk, pred_pk, checker, rng)
    memb = membership_inputs(bundle.attrs_com, bundle.root)
    pred = predicate_inputs(bundle.attrs_com, bundle.root_com, checker)
    assert verify_tree_memb(tree_vk, bundle.membership_proof, *memb)
    assert check_binding(memb, pred)
    assert verify_credential(bundle, tree_vk, pred_vk, checker, root_commitment=ROOT_SCHEME)

    young = NameAndBirthYear.random("Andrew", 2010, rng)
    tree.insert(18, young.commit())
    with pytest.raises(UnsatisfiedConstraintError):
        prove_pred(pred_pk, checker, young, ROOT_SCHEME.commit([tree.root()], 1), rng)
