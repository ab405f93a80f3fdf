"""
基于 MiMC-7 的具体原语

- MiMCTwoToOne：树的二合一哈希 H(l, r) = MultiMiMC7(iv; l, r)；
- MiMCCommitment：属性/根承诺 commit(values, nonce) = MultiMiMC7(iv; nonce, values...)。

每个实例由 MiMCParams 描述（轮常量与域分离 iv），电路外与电路内的计算逐轮一致。
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

from circuits.gadgets import mimc_hash_gadget
from circuits.r1cs import ConstraintSystem, LinComb
from utils import DEFAULT_MIMC_ROUNDS, DEFAULT_MIMC_SEED, hash_to_field, mimc_constants, mimc_hash

TREE_DOMAIN = b"zkcred/tree"
ATTRS_DOMAIN = b"zkcred/attrs"
ROOT_DOMAIN = b"zkcred/root"


@dataclass(frozen=True)
class MiMCParams:
    rounds: int
    constants: Tuple[int, ...]
    iv: int

    @classmethod
    def setup(cls, rounds: int = DEFAULT_MIMC_ROUNDS, seed: bytes = DEFAULT_MIMC_SEED,
              domain: bytes = TREE_DOMAIN) -> 'MiMCParams':
        constants = mimc_constants(rounds, seed)
        return cls(rounds=rounds, constants=constants, iv=hash_to_field(domain, constants))


class MiMCTwoToOne:
    """树哈希。无状态，参数通过 crh_params 传入。"""

    @staticmethod
    def setup(rounds: int = DEFAULT_MIMC_ROUNDS, seed: bytes = DEFAULT_MIMC_SEED) -> MiMCParams:
        return MiMCParams.setup(rounds, seed, TREE_DOMAIN)

    @staticmethod
    def evaluate(params: MiMCParams, left: int, right: int) -> int:
        return mimc_hash((left, right), params.iv, params.constants)

    @staticmethod
    def evaluate_gadget(cs: ConstraintSystem, params: MiMCParams, left: LinComb, right: LinComb) -> LinComb:
        return mimc_hash_gadget(cs, (left, right), params.iv, params.constants, "crh")

    @staticmethod
    def default_output() -> int:
        """空叶子的取值。"""
        return 0


class MiMCCommitment:
    """承诺方案，nonce 作为第一个分组吸收。"""

    def __init__(self, params: MiMCParams):
        self.params = params

    @classmethod
    def setup(cls, rounds: int = DEFAULT_MIMC_ROUNDS, seed: bytes = DEFAULT_MIMC_SEED,
              domain: bytes = ATTRS_DOMAIN) -> 'MiMCCommitment':
        return cls(MiMCParams.setup(rounds, seed, domain))

    def commit(self, values: Sequence[int], nonce: int) -> int:
        return mimc_hash([nonce, *values], self.params.iv, self.params.constants)

    def commit_gadget(self, cs: ConstraintSystem, values: Sequence[LinComb], nonce: LinComb) -> LinComb:
        return mimc_hash_gadget(cs, [nonce, *values], self.params.iv, self.params.constants, "commit")

    def __eq__(self, other) -> bool:
        return isinstance(other, MiMCCommitment) and self.params == other.params

    def __hash__(self) -> int:
        return hash(self.params)
