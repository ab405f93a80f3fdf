"""
证明绑定协议

持有者提交两份独立的证明：
- 成员证明，公开输入 [attrs_com, root]；
- 谓词证明，公开输入 [attrs_com, root_com, *checker 标量]。

验证方除分别验证两份证明外，还必须检查两者引用的是同一个属性承诺（域元素逐一相同）。
若持有者一并给出根承诺的打开 nonce，则还检查 root_com 确实是 root 的承诺。
"""
from typing import List, Optional, Sequence, Union

from circuits.predicate import verify_pred_prepared, prepare_pred_inputs
from common.datastructures import CredentialBundle, PredPublicInput, PreparedVerifyingKey, VerifyingKey
from common.errors import FieldConversionError
from common.interfaces import CommitmentScheme, PredicateChecker
from crypto import to_field_elements
from trees import verify_tree_memb
from utils import log_msg


def membership_inputs(attrs_com: int, root: int) -> List[int]:
    return [*to_field_elements(attrs_com), *to_field_elements(root)]


def predicate_inputs(attrs_com: int, root_com: int, checker: PredicateChecker) -> List[int]:
    return [*to_field_elements(attrs_com), *to_field_elements(root_com), *checker.public_inputs()]


def check_binding(memb_inputs: Sequence[int], pred_inputs: Sequence[int], com_len: int = 1) -> bool:
    """两份公开输入向量开头的属性承诺域元素必须完全相同。"""
    if com_len < 1 or len(memb_inputs) < com_len or len(pred_inputs) < com_len:
        return False
    return list(memb_inputs[:com_len]) == list(pred_inputs[:com_len])


def open_root_com(root_commitment: CommitmentScheme, root_com: int, root: int, nonce: int) -> bool:
    return root_commitment.commit([root], nonce) == root_com


def verify_credential(bundle: CredentialBundle, tree_vk: Union[VerifyingKey, PreparedVerifyingKey],
                      pred_vk: Union[VerifyingKey, PreparedVerifyingKey], checker: PredicateChecker,
                      root_commitment: Optional[CommitmentScheme] = None, pinput: Optional[PredPublicInput] = None) -> bool:
    """
    完整验证一份凭证：两份证明都通过、承诺绑定成立，并在给出 nonce 时检查根承诺的打开。

    :param bundle: 持有者提交的凭证包。
    :param tree_vk: 成员电路的验证密钥（对应已发布根所在树的高度），可为预处理后的密钥。
    :param pred_vk: 谓词电路的验证密钥，可为预处理后的密钥。
    :param checker: 验证方选定的谓词。
    :param root_commitment: 根承诺方案；bundle 带有 nonce 时必须提供。
    :param pinput: 可选，prepare_pred_inputs 的结果，用于复用；其标量必须与 checker 的公开标量一致。
    """
    try:
        memb = membership_inputs(bundle.attrs_com, bundle.root)
        pred = predicate_inputs(bundle.attrs_com, bundle.root_com, checker)
    except FieldConversionError as e:
        log_msg("WARN", "PROTOCOL", None, f"公开值不是规范域元素: {e}")
        return False
    if not check_binding(memb, pred):
        log_msg("WARN", "PROTOCOL", None, "两份证明引用的属性承诺不一致")
        return False
    if pinput is not None and tuple(checker.public_inputs()) != tuple(pinput.scalars):
        log_msg("WARN", "PROTOCOL", None, f"预处理输入的谓词标量 {pinput.scalars} 与 checker 不一致")
        return False

    if bundle.root_com_nonce is not None:
        if root_commitment is None or not open_root_com(root_commitment, bundle.root_com, bundle.root,
                                                        bundle.root_com_nonce):
            log_msg("WARN", "PROTOCOL", None, "根承诺无法打开为已发布的根")
            return False

    if not verify_tree_memb(tree_vk, bundle.membership_proof, bundle.attrs_com, bundle.root):
        log_msg("INFO", "PROTOCOL", None, "成员证明验证失败")
        return False

    if pinput is None:
        try:
            pinput = prepare_pred_inputs(pred_vk, checker)
        except ValueError as e:
            log_msg("WARN", "PROTOCOL", None, f"谓词与验证密钥不匹配: {e}")
            return False
    if not verify_pred_prepared(pred_vk, bundle.predicate_proof, bundle.attrs_com, bundle.root_com, pinput):
        log_msg("INFO", "PROTOCOL", None, "谓词证明验证失败")
        return False
    return True
