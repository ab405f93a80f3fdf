"""
能力接口（结构化子类型）

证明核心只依赖以下四种能力，具体实现（primitives/mimc.py、测试中的属性记录与谓词）无需显式继承。
"""
from typing import Any, ClassVar, List, Protocol, Sequence, Tuple, runtime_checkable

from circuits.r1cs import ConstraintSystem, LinComb


@runtime_checkable
class CommitmentScheme(Protocol):
    """对有序域元素列表的承诺，输出一个域元素。"""

    def commit(self, values: Sequence[int], nonce: int) -> int: ...

    def commit_gadget(self, cs: ConstraintSystem, values: Sequence[LinComb], nonce: LinComb) -> LinComb: ...


@runtime_checkable
class TwoToOneHash(Protocol):
    """抗碰撞的二合一压缩函数 H(params, left, right)。"""

    def evaluate(self, params: Any, left: int, right: int) -> int: ...

    def evaluate_gadget(self, cs: ConstraintSystem, params: Any, left: LinComb, right: LinComb) -> LinComb: ...

    def default_output(self) -> int: ...


@runtime_checkable
class Attrs(Protocol):
    """
    属性记录。FIELD_NAMES 固定字段顺序；default() 返回与内容无关的占位记录，
    其电路形状必须与任意真实记录一致。
    """
    FIELD_NAMES: ClassVar[Tuple[str, ...]]
    nonce: int

    def field_values(self) -> List[int]: ...

    def commitment_scheme(self) -> CommitmentScheme: ...

    def commit(self) -> int: ...


@runtime_checkable
class PredicateChecker(Protocol):
    """
    谓词检查器。public_inputs() 给出确定的有序公开标量；pred 返回一个布尔变量，
    由谓词电路约束其等于 1。
    """

    def public_inputs(self) -> List[int]: ...

    def pred(self, cs: ConstraintSystem, attrs_var: Any, public_vars: Sequence[LinComb]) -> LinComb: ...
