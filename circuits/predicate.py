"""
谓词电路与其生命周期

公开输入（按顺序）：attrs_com, root_com, 以及 checker.public_inputs() 给出的固定标量。
约束：
1. 见证属性在电路内的承诺等于 attrs_com；
2. checker.pred(...) 返回的布尔变量等于 1。
root_com 只分配为公开输入，不参与约束，供上层协议绑定使用。
"""
from typing import Any, Optional, Sequence, Tuple, Union

from circuits.attrs import AttrsVar
from circuits.gadgets import enforce_true
from circuits.r1cs import ConstraintSystem
from common.datastructures import PredPublicInput, PreparedVerifyingKey, Proof, ProvingKey, VerifyingKey
from common.interfaces import Attrs, PredicateChecker
from crypto import add
from snark.groth16 import Groth16
from utils import log_msg

PRED_FIXED_INPUTS = 2


class PredicateCircuit:

    def __init__(self, checker: PredicateChecker, attrs: Attrs, attrs_com: int, root_com: int,
                 is_setup: bool = False):
        self.checker = checker
        self.attrs = attrs
        self.attrs_com = attrs_com
        self.root_com = root_com
        self.is_setup = is_setup

    @classmethod
    def for_setup(cls, checker, attrs_type) -> 'PredicateCircuit':
        attrs = attrs_type.default()
        return cls(checker, attrs, attrs.commit(), 0, is_setup=True)

    @classmethod
    def for_proving(cls, checker, attrs, root_com: int) -> 'PredicateCircuit':
        return cls(checker, attrs, attrs.commit(), root_com)

    def generate_constraints(self, cs: ConstraintSystem):
        attrs_com = cs.alloc_input(self.attrs_com, "attrs_com")
        cs.alloc_input(self.root_com, "root_com")
        public_vars = [
            cs.alloc_input(v, f"pred_input{i}") for i, v in enumerate(self.checker.public_inputs())
        ]

        attrs_var = AttrsVar.new_witness(cs, self.attrs)
        cs.enforce_equal(attrs_var.commit(cs), attrs_com, "attrs_com")

        with cs.namespace("pred"):
            result = self.checker.pred(cs, attrs_var, public_vars)
            enforce_true(cs, result, "holds")


def gen_pred_crs(checker: PredicateChecker, attrs_type, rng: Optional[Any] = None) -> Tuple[ProvingKey, VerifyingKey]:
    """为 (checker, 属性类型) 生成谓词电路的密钥对。"""
    circuit = PredicateCircuit.for_setup(checker, attrs_type)
    pk = Groth16.generate_parameters(circuit, rng, label=f"pred:{type(checker).__name__}")
    return pk, pk.vk


def prove_pred(pk: ProvingKey, checker: PredicateChecker, attrs: Attrs, root_com: int, rng: Optional[Any] = None) -> Proof:
    """属性不满足谓词时抛出 UnsatisfiedConstraintError。"""
    circuit = PredicateCircuit.for_proving(checker, attrs, root_com)
    return Groth16.create_proof(circuit, pk, rng)


def prepare_pred_inputs(vk: Union[VerifyingKey, PreparedVerifyingKey], checker: PredicateChecker) -> PredPublicInput:
    """把谓词的固定标量预先折叠为 G1 点；验证方对同一 checker 可反复复用。"""
    pvk = Groth16.as_prepared(vk)
    scalars = tuple(checker.public_inputs())
    if not Groth16.inputs_are_canonical(scalars):
        raise ValueError("谓词公开标量必须是规范域元素")
    if PRED_FIXED_INPUTS + len(scalars) != pvk.vk.num_public_inputs:
        raise ValueError(
            f"谓词公开标量个数 {len(scalars)} 与验证密钥不一致（应为 {pvk.vk.num_public_inputs - PRED_FIXED_INPUTS}）")
    prepared = Groth16.prepare_inputs(pvk, scalars, offset=PRED_FIXED_INPUTS)
    return PredPublicInput(scalars=scalars, prepared=prepared)


def verify_pred(vk: Union[VerifyingKey, PreparedVerifyingKey], proof: Proof, public_inputs: Sequence[int]) -> bool:
    """public_inputs 为完整向量 [attrs_com, root_com, *checker 标量]。"""
    pvk = Groth16.as_prepared(vk)
    ok = Groth16.verify_proof(pvk, proof, public_inputs)
    log_msg("DEBUG", "PRED", pvk.vk.label or None, f"谓词证明验证结果: {ok}")
    return ok


def verify_pred_prepared(vk: Union[VerifyingKey, PreparedVerifyingKey], proof: Proof, attrs_com: int, root_com: int,
                         pinput: PredPublicInput) -> bool:
    """使用 prepare_pred_inputs 的结果验证，只需再折叠 attrs_com 与 root_com。"""
    pvk = Groth16.as_prepared(vk)
    if PRED_FIXED_INPUTS + len(pinput.scalars) != pvk.vk.num_public_inputs:
        return False
    if not Groth16.inputs_are_canonical((attrs_com, root_com)):
        return False
    acc = add(pvk.vk.gamma_abc_g1[0], Groth16.prepare_inputs(pvk, (attrs_com, root_com)))
    acc = add(acc, pinput.prepared)
    ok = Groth16.verify_proof_with_prepared_inputs(pvk, proof, acc)
    log_msg("DEBUG", "PRED", pvk.vk.label or None, f"谓词证明（预处理输入）验证结果: {ok}")
    return ok
