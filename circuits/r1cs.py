"""
R1CS 约束系统

电路的每个变量都是见证向量中变量的线性组合（LinComb），例如 x = w0 + 5*w2 表示为 {w0: 1, w2: 5}。
每条约束形如 <A, z> * <B, z> = <C, z>，z = (1, 公开输入..., 私有见证...)。

ConstraintSystem 有两种模式：
- SETUP：仅用于固定电路拓扑（密钥生成），见证取规范默认值，不检查可满足性；
- PROVE：携带真实见证，生成证明前必须全部满足。
"""
import enum
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple, Union

from crypto import CURVE_ORDER as FIELD_PRIME, to_field_element
from common.errors import FieldConversionError

# 变量标识：("one", 0) 为常数 1；("input", i) 为第 i 个公开输入；("aux", i) 为第 i 个私有见证
Variable = Tuple[str, int]
ONE: Variable = ("one", 0)


class LinComb:
    """变量的线性组合。加减与常数倍不产生约束；两个变量相乘需通过 ConstraintSystem.mul。"""

    __slots__ = ("terms",)

    def __init__(self, terms: Optional[Dict[Variable, int]] = None):
        self.terms: Dict[Variable, int] = dict(terms) if terms else {}

    @classmethod
    def constant(cls, value: int) -> "LinComb":
        value %= FIELD_PRIME
        return cls({ONE: value}) if value else cls()

    @staticmethod
    def coerce(other: Union["LinComb", int]) -> "LinComb":
        if isinstance(other, LinComb):
            return other
        if isinstance(other, int):
            return LinComb.constant(other)
        raise TypeError(f"无法转换为线性组合: {other!r}")

    def __add__(self, other: Union["LinComb", int]) -> "LinComb":
        terms = dict(self.terms)
        for var, coeff in LinComb.coerce(other).terms.items():
            v = (terms.get(var, 0) + coeff) % FIELD_PRIME
            if v:
                terms[var] = v
            else:
                terms.pop(var, None)
        return LinComb(terms)

    __radd__ = __add__

    def __neg__(self) -> "LinComb":
        return LinComb({var: (-coeff) % FIELD_PRIME for var, coeff in self.terms.items()})

    def __sub__(self, other: Union["LinComb", int]) -> "LinComb":
        return self + (-LinComb.coerce(other))

    def __rsub__(self, other: Union["LinComb", int]) -> "LinComb":
        return LinComb.coerce(other) - self

    def __mul__(self, k: int) -> "LinComb":
        if not isinstance(k, int):
            raise TypeError("线性组合只能乘以常数；变量相乘请使用 ConstraintSystem.mul")
        k %= FIELD_PRIME
        if not k:
            return LinComb()
        return LinComb({var: coeff * k % FIELD_PRIME for var, coeff in self.terms.items()})

    __rmul__ = __mul__

    def is_constant(self) -> bool:
        return self.terms.keys() <= {ONE}

    def constant_value(self) -> int:
        return self.terms.get(ONE, 0)

    def __repr__(self) -> str:
        return f"LinComb({self.terms})"


class SynthesisMode(enum.Enum):
    SETUP = "setup"
    PROVE = "prove"


class ConstraintSystem:
    """记录变量赋值与约束的 R1CS 实例。"""

    def __init__(self, mode: SynthesisMode = SynthesisMode.PROVE):
        self.mode = mode
        self.input_assignment: List[int] = []
        self.aux_assignment: List[int] = []
        self.constraints: List[Tuple[LinComb, LinComb, LinComb, str]] = []
        self._namespace: List[str] = []

    # ---- 规模 ----
    @property
    def num_inputs(self) -> int:
        """公开输入个数（不含常数 1）。"""
        return len(self.input_assignment)

    @property
    def num_aux(self) -> int:
        return len(self.aux_assignment)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    def shape(self) -> Tuple[int, int, int]:
        return self.num_inputs, self.num_aux, self.num_constraints

    def is_setup(self) -> bool:
        return self.mode is SynthesisMode.SETUP

    # ---- 命名空间 ----
    @contextmanager
    def namespace(self, name: str) -> Iterator[None]:
        self._namespace.append(name)
        try:
            yield
        finally:
            self._namespace.pop()

    def _path(self, name: str) -> str:
        return "/".join(self._namespace + [name])

    # ---- 变量分配 ----
    def alloc_input(self, value: int, name: str = "input") -> LinComb:
        """分配一个公开输入。值必须已是规范域元素，否则抛出 FieldConversionError。"""
        try:
            value = to_field_element(value)
        except FieldConversionError as e:
            raise FieldConversionError(f"{self._path(name)}: {e}") from e
        self.input_assignment.append(value)
        return LinComb({("input", len(self.input_assignment) - 1): 1})

    def alloc_witness(self, value: int, name: str = "witness") -> LinComb:
        """分配一个私有见证，值按域取模。"""
        if isinstance(value, bool) or not isinstance(value, int):
            raise FieldConversionError(f"{self._path(name)}: 见证值必须是整数，得到 {value!r}")
        self.aux_assignment.append(value % FIELD_PRIME)
        return LinComb({("aux", len(self.aux_assignment) - 1): 1})

    # ---- 约束 ----
    def enforce(self, a: Union[LinComb, int], b: Union[LinComb, int], c: Union[LinComb, int], name: str = "constraint"):
        self.constraints.append((LinComb.coerce(a), LinComb.coerce(b), LinComb.coerce(c), self._path(name)))

    def enforce_equal(self, x: Union[LinComb, int], y: Union[LinComb, int], name: str = "eq"):
        self.enforce(LinComb.coerce(x) - y, 1, 0, name)

    def mul(self, x: Union[LinComb, int], y: Union[LinComb, int], name: str = "mul") -> LinComb:
        """返回 x * y；若一方为常数则不产生约束。"""
        x, y = LinComb.coerce(x), LinComb.coerce(y)
        if x.is_constant():
            return y * x.constant_value()
        if y.is_constant():
            return x * y.constant_value()
        z = self.alloc_witness(self.value(x) * self.value(y) % FIELD_PRIME, name)
        self.enforce(x, y, z, name)
        return z

    # ---- 求值 ----
    def _var_value(self, var: Variable) -> int:
        kind, idx = var
        if kind == "one":
            return 1
        if kind == "input":
            return self.input_assignment[idx]
        return self.aux_assignment[idx]

    def value(self, lc: Union[LinComb, int]) -> int:
        lc = LinComb.coerce(lc)
        return sum(coeff * self._var_value(var) for var, coeff in lc.terms.items()) % FIELD_PRIME

    def index_of(self, var: Variable) -> int:
        """变量在完整赋值向量 z = (1, inputs, aux) 中的位置。"""
        kind, idx = var
        if kind == "one":
            return 0
        if kind == "input":
            return 1 + idx
        return 1 + self.num_inputs + idx

    def full_assignment(self) -> List[int]:
        return [1] + self.input_assignment + self.aux_assignment

    def which_is_unsatisfied(self) -> Optional[str]:
        """返回第一条不满足的约束名；全部满足时返回 None。"""
        for a, b, c, name in self.constraints:
            if self.value(a) * self.value(b) % FIELD_PRIME != self.value(c):
                return name
        return None

    def is_satisfied(self) -> bool:
        return self.which_is_unsatisfied() is None
