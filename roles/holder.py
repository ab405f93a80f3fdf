from typing import Any, Optional

from circuits.predicate import prove_pred
from common.datastructures import CredentialBundle, ProvingKey
from crypto import random_scalar
from trees import ComTree
from utils import log_msg


class Holder:
    """
    持有者：保存自己的属性记录与树中下标，针对验证方选定的谓词生成凭证包。
    """

    def __init__(self, holder_id: str, attrs):
        self.holder_id = holder_id
        self.attrs = attrs
        self.attrs_com = attrs.commit()
        self.index: Optional[int] = None

    def accept(self, index: int, attrs_com: int):
        """接收发行方分配的下标。发行方登记的承诺必须与本地一致。"""
        if attrs_com != self.attrs_com:
            log_msg("ERROR", "HOLDER", self.holder_id, "发行方登记的承诺与本地属性不一致")
            raise ValueError("发行方登记的承诺与本地属性不一致")
        self.index = index

    def present(self, tree: ComTree, tree_pk: ProvingKey, pred_pk: ProvingKey, checker, root_commitment,
                rng: Optional[Any] = None) -> CredentialBundle:
        """
        生成凭证包：在 tree（发行方快照）的当前根下证明成员关系，并对 checker 证明谓词成立。
        属性不满足谓词时抛出 UnsatisfiedConstraintError。
        """
        if self.index is None:
            raise ValueError(f"{self.holder_id} 尚未获得发行方分配的下标")
        root = tree.root()
        nonce = random_scalar(rng)
        root_com = root_commitment.commit([root], nonce)

        membership_proof = tree.prove_membership(tree_pk, self.index, self.attrs_com, rng)
        predicate_proof = prove_pred(pred_pk, checker, self.attrs, root_com, rng)
        log_msg("INFO", "HOLDER", self.holder_id, f"生成凭证包 root={root:#x}")
        return CredentialBundle(
            membership_proof=membership_proof,
            predicate_proof=predicate_proof,
            attrs_com=self.attrs_com,
            root=root,
            root_com=root_com,
            root_com_nonce=nonce,
        )
