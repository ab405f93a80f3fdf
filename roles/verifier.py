from typing import Iterable, Set

from circuits.predicate import prepare_pred_inputs
from common.datastructures import CredentialBundle, VerifyingKey
from protocol import verify_credential
from snark.groth16 import Groth16
from utils import log_msg


class Verifier:
    """
    验证方：选定谓词，只接受基于已发布根的凭证。
    两份验证密钥的 e(α, β) 与谓词的固定公开标量都在构造时计算一次，之后每次验证复用。
    """

    def __init__(self, verifier_id: str, tree_vk: VerifyingKey, pred_vk: VerifyingKey, checker, root_commitment):
        self.verifier_id = verifier_id
        self.checker = checker
        self.root_commitment = root_commitment
        self.tree_pvk = Groth16.prepare_verifying_key(tree_vk)
        self.pred_pvk = Groth16.prepare_verifying_key(pred_vk)
        self.pinput = prepare_pred_inputs(self.pred_pvk, checker)
        self.trusted_roots: Set[int] = set()
        self.accepted = 0
        self.rejected = 0

    def trust_roots(self, roots: Iterable[int]):
        self.trusted_roots.update(roots)

    def verify(self, bundle: CredentialBundle) -> bool:
        if bundle.root not in self.trusted_roots:
            log_msg("INFO", "VERIFIER", self.verifier_id, f"拒绝：根 {bundle.root:#x} 未发布")
            ok = False
        else:
            ok = verify_credential(bundle, self.tree_pvk, self.pred_pvk, self.checker,
                                   root_commitment=self.root_commitment, pinput=self.pinput)
        if ok:
            self.accepted += 1
        else:
            self.rejected += 1
        log_msg("INFO", "VERIFIER", self.verifier_id, f"凭证验证结果: {ok}")
        return ok
