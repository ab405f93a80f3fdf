from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from crypto import (
    G1Element, G2Element, GTElement,
    serialize_g1, deserialize_g1, serialize_g2, deserialize_g2,
)


@dataclass
class AuthPath:
    """
    认证路径：叶子层的原始值对（叶子不做哈希），以及自底向上的各内部层兄弟对，
    从紧邻叶子的第一层内部节点直到根的两个孩子。每一对都按树中 (左, 右) 顺序存放。
    """
    leaf_pair: Tuple[int, int]
    inner_pairs: List[Tuple[int, int]] = field(default_factory=list)

    @classmethod
    def default(cls, height: int, default_leaf: int, default_inner: int) -> 'AuthPath':
        """形状正确的占位路径，仅用于密钥生成时固定电路拓扑。"""
        return cls(
            leaf_pair=(default_leaf, default_leaf),
            inner_pairs=[(default_inner, default_inner)] * (height - 1),
        )

    def verify(self, crh, crh_params, root: int, leaf: int) -> bool:
        """电路外按与电路相同的规则检查路径：每层的计算值必须出现在上一层的兄弟对中。"""
        if leaf not in self.leaf_pair:
            return False
        cur = crh.evaluate(crh_params, *self.leaf_pair)
        for left, right in self.inner_pairs:
            if cur != left and cur != right:
                return False
            cur = crh.evaluate(crh_params, left, right)
        return cur == root

    def to_dict(self) -> dict:
        return {
            "leaf_pair": [hex(v) for v in self.leaf_pair],
            "inner_pairs": [[hex(l), hex(r)] for l, r in self.inner_pairs],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AuthPath':
        l, r = data["leaf_pair"]
        return cls(
            leaf_pair=(int(l, 16), int(r, 16)),
            inner_pairs=[(int(a, 16), int(b, 16)) for a, b in data["inner_pairs"]],
        )


@dataclass(frozen=True)
class VerifyingKey:
    """Groth16 验证密钥。gamma_abc_g1[0] 对应常数 1，其后依次对应各公开输入。"""
    alpha_g1: G1Element
    beta_g2: G2Element
    gamma_g2: G2Element
    delta_g2: G2Element
    gamma_abc_g1: Tuple[G1Element, ...]
    label: str = ""

    @property
    def num_public_inputs(self) -> int:
        return len(self.gamma_abc_g1) - 1


@dataclass(frozen=True)
class PreparedVerifyingKey:
    """预计算 e(alpha, beta) 的验证密钥。"""
    vk: VerifyingKey
    alpha_g1_beta_g2: GTElement


@dataclass(frozen=True)
class ProvingKey:
    """Groth16 证明密钥，记录其生成时的电路形状 (公开输入数, 见证数, 约束数)。"""
    vk: VerifyingKey
    beta_g1: G1Element
    delta_g1: G1Element
    a_query: Tuple[G1Element, ...]
    b_g1_query: Tuple[G1Element, ...]
    b_g2_query: Tuple[G2Element, ...]
    h_query: Tuple[G1Element, ...]
    l_query: Tuple[G1Element, ...]
    shape: Tuple[int, int, int]

    @property
    def label(self) -> str:
        return self.vk.label


@dataclass(frozen=True)
class Proof:
    """Groth16 证明 (A ∈ G1, B ∈ G2, C ∈ G1)。"""
    a: G1Element
    b: G2Element
    c: G1Element

    def to_dict(self) -> dict:
        return {
            "a": serialize_g1(self.a).hex(),
            "b": serialize_g2(self.b).hex(),
            "c": serialize_g1(self.c).hex(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Proof':
        return cls(
            a=deserialize_g1(bytes.fromhex(data["a"])),
            b=deserialize_g2(bytes.fromhex(data["b"])),
            c=deserialize_g1(bytes.fromhex(data["c"])),
        )


@dataclass(frozen=True)
class PredPublicInput:
    """谓词的固定公开标量，以及它们在 gamma_abc 中对应项的 G1 累加（验证方可复用）。"""
    scalars: Tuple[int, ...]
    prepared: G1Element


@dataclass
class CredentialBundle:
    """持有者提交给验证方的两份证明及其公开值。"""
    membership_proof: Proof
    predicate_proof: Proof
    attrs_com: int
    root: int
    root_com: int
    root_com_nonce: Optional[int] = None

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {
            "membership_proof": self.membership_proof.to_dict(),
            "predicate_proof": self.predicate_proof.to_dict(),
            "attrs_com": hex(self.attrs_com),
            "root": hex(self.root),
            "root_com": hex(self.root_com),
        }
        if self.root_com_nonce is not None:
            d["root_com_nonce"] = hex(self.root_com_nonce)
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'CredentialBundle':
        nonce = data.get("root_com_nonce")
        return cls(
            membership_proof=Proof.from_dict(data["membership_proof"]),
            predicate_proof=Proof.from_dict(data["predicate_proof"]),
            attrs_com=int(data["attrs_com"], 16),
            root=int(data["root"], 16),
            root_com=int(data["root_com"], 16),
            root_com_nonce=int(nonce, 16) if nonce is not None else None,
        )
