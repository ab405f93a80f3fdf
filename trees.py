"""
承诺树

- ComTree：发行方维护的定高承诺树（叶子为属性承诺），封装 SparseMerkleTree 并提供成员证明；
- gen_tree_memb_crs / verify_tree_memb：树成员关系电路的密钥生成与验证。
"""
import time
from typing import Any, Mapping, Optional, Tuple, Union

from circuits.membership import TreeMembershipCircuit
from common.datastructures import AuthPath, PreparedVerifyingKey, Proof, ProvingKey, VerifyingKey
from common.errors import CommitmentMismatchError
from common.interfaces import TwoToOneHash
from merkle import SparseMerkleTree, check_height
from primitives.mimc import MiMCTwoToOne
from snark.groth16 import Groth16
from utils import log_msg


class ComTree:
    """
    属性承诺树：
    - 叶子：下标 i 处持有者的属性承诺；未占用位置为默认值；
    - 根：公开发布，持有者据此证明其承诺在树中而不暴露位置。
    """

    def __init__(self, smt: SparseMerkleTree):
        self.smt = smt

    @classmethod
    def empty(cls, crh_params, height: int, hash: TwoToOneHash = MiMCTwoToOne) -> 'ComTree':
        tree = cls(SparseMerkleTree(hash, crh_params, height))
        log_msg("DEBUG", "TREE", None, f"创建空树 height={height} root={tree.root():#x}")
        return tree

    @classmethod
    def new(cls, crh_params, height: int, coms: Mapping[int, int], hash: TwoToOneHash = MiMCTwoToOne) -> 'ComTree':
        """批量装载；任一下标越界时抛出 IndexOutOfRangeError，不产生部分写入。"""
        started = time.perf_counter()
        tree = cls(SparseMerkleTree(hash, crh_params, height))
        tree.smt.bulk_update(dict(coms))
        log_msg("DEBUG", "TREE", None,
                f"批量装载 {len(coms)} 个承诺 height={height}，耗时 {time.perf_counter() - started:.3f}s")
        return tree

    @property
    def height(self) -> int:
        return self.smt.height

    @property
    def crh(self):
        return self.smt.crh

    @property
    def crh_params(self):
        return self.smt.crh_params

    def insert(self, idx: int, com: int):
        self.smt.update(idx, com)

    def remove(self, idx: int):
        if self.smt.get(idx) == self.smt.defaults[self.height]:
            return
        self.smt.update(idx, self.smt.defaults[self.height])

    def get(self, idx: int) -> int:
        return self.smt.get(idx)

    def root(self) -> int:
        return self.smt.root()

    def __len__(self) -> int:
        return len(self.smt)

    def copy(self) -> 'ComTree':
        return ComTree(self.smt.copy())

    def generate_proof(self, idx: int, expected_com: int) -> AuthPath:
        """下标越界抛出 IndexOutOfRangeError；该位置存储的承诺与 expected_com 不同抛出 CommitmentMismatchError。"""
        stored = self.smt.get(idx)
        if stored != expected_com:
            raise CommitmentMismatchError(idx, expected_com, stored)
        return self.smt.auth_path(idx)

    def prove_membership(self, pk: ProvingKey, idx: int, attrs_com: int, rng: Optional[Any] = None) -> Proof:
        """生成“attrs_com 在当前根下的树中”的零知识证明。"""
        path = self.generate_proof(idx, attrs_com)
        circuit = TreeMembershipCircuit.for_proving(self.crh, self.crh_params, self.height,
                                                    attrs_com, self.root(), path)
        return Groth16.create_proof(circuit, pk, rng)


def gen_tree_memb_crs(crh_params, height: int, hash: TwoToOneHash = MiMCTwoToOne,
                      rng: Optional[Any] = None) -> Tuple[ProvingKey, VerifyingKey]:
    """为给定树高与哈希参数生成成员关系电路的密钥对。"""
    check_height(height)
    circuit = TreeMembershipCircuit.for_setup(hash, crh_params, height)
    pk = Groth16.generate_parameters(circuit, rng, label=f"tree:h{height}")
    return pk, pk.vk


def verify_tree_memb(vk: Union[VerifyingKey, PreparedVerifyingKey], proof: Proof, attrs_com: int, root: int) -> bool:
    """vk 可以是预处理过的密钥，验证方反复验证时应传入 Groth16.prepare_verifying_key 的结果。"""
    pvk = Groth16.as_prepared(vk)
    ok = Groth16.verify_proof(pvk, proof, [attrs_com, root])
    log_msg("DEBUG", "TREE", pvk.vk.label or None, f"成员证明验证结果: {ok}")
    return ok
