"""
错误类型

- 前置条件违反（高度 < 2、索引越界）：调用方缺陷，在边界处一次性校验后直接抛出。
- 承诺不匹配：请求为某索引生成认证路径，但该位置存储的承诺与给定值不同。
- 约束系统错误：电路分配失败、字段转换失败、约束不满足（含谓词不成立）。

验证失败不属于错误：验证函数总是返回 False。
"""
from typing import Optional


class ZkCredError(Exception):
    """本项目所有错误的基类。"""


class PreconditionError(ZkCredError):
    """调用方违反了前置条件。"""


class InvalidHeightError(PreconditionError, ValueError):
    """树高小于 2。"""


class IndexOutOfRangeError(PreconditionError, IndexError):
    """叶子索引不在 [0, 2^height) 内。"""


class CommitmentMismatchError(ZkCredError):
    """树中给定索引处存储的值与期望的承诺不一致。"""

    def __init__(self, index: int, expected: int, stored: int):
        super().__init__(f"索引 {index} 处的承诺不匹配：期望 {expected:#x}，实际 {stored:#x}")
        self.index = index
        self.expected = expected
        self.stored = stored


class SynthesisError(ZkCredError):
    """约束系统构建或证明生成失败。"""


class UnsatisfiedConstraintError(SynthesisError):
    """见证不满足约束系统（例如谓词对真实属性不成立）。"""

    def __init__(self, constraint: Optional[str]):
        super().__init__(f"约束不满足: {constraint}")
        self.constraint = constraint


class FieldConversionError(SynthesisError):
    """无法把值转换为标量域元素。"""
