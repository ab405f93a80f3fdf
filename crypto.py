"""
证明系统的密码学原语，使用 py_ecc 库。

曲线为 BN128（altbn128/BN254），标量域阶 CURVE_ORDER 同时是所有电路的约束域。
提供：
- 随机标量、G1/G2 生成元与单位元、双线性对；
- 固定基标量乘预计算表（FixedBaseTable，用于密钥生成）与多标量乘（multiexp，用于证明生成）；
- 点的序列化/反序列化（bytes，定长、确定性编码）；
- 域元素转换（to_field_element / to_field_elements）。
"""
import secrets
from typing import TypeAlias, Any, List, Optional, Sequence, Tuple

from py_ecc.optimized_bn128 import (
    FQ, FQ2,
    G1, G2, Z1, Z2,
    add,
    b as B1_COEFF,
    b2 as B2_COEFF,
    curve_order as CURVE_ORDER,
    double,
    is_inf,
    is_on_curve,
    multiply,
    normalize,
    pairing as ecc_pairing,
)

from common.errors import FieldConversionError

# --- 为清晰起见定义的类型别名 ---
Scalar: TypeAlias = int
G1Element: TypeAlias = Any
G2Element: TypeAlias = Any
GTElement: TypeAlias = Any

# --- 密码学原语 ---
g1_generator: G1Element = G1
g2_generator: G2Element = G2
G1_IDENTITY: G1Element = Z1
G2_IDENTITY: G2Element = Z2


def random_scalar(rng: Optional[Any] = None) -> Scalar:
    """生成一个范围在[1, CURVE_ORDER - 1]内的随机标量；传入 rng（random.Random）时可复现。"""
    if rng is not None:
        return rng.randrange(1, CURVE_ORDER)
    return secrets.randbelow(CURVE_ORDER - 1) + 1


def pairing_g2_g1(q_g2: G2Element, p_g1: G1Element) -> GTElement:
    """计算双线性对 e(Q, P)，Q ∈ G2，P ∈ G1（BN128 默认顺序）。"""
    return ecc_pairing(q_g2, p_g1)


def g1_on_curve(p: G1Element) -> bool:
    return is_on_curve(p, B1_COEFF)


def g2_on_curve(p: G2Element) -> bool:
    return is_on_curve(p, B2_COEFF)


def g2_in_subgroup(p: G2Element) -> bool:
    """G2 扭曲曲线的余因子不为 1，曲线上的点还须满足 r·P = O。"""
    return is_inf(multiply(p, CURVE_ORDER))


# --- 域元素转换 ---
def to_field_element(value: Any) -> Scalar:
    """把一个承诺/根等值转换为标量域元素；值必须是 [0, CURVE_ORDER) 内的整数。"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldConversionError(f"无法转换为域元素: {value!r}")
    if not 0 <= value < CURVE_ORDER:
        raise FieldConversionError(f"值超出标量域范围: {value:#x}")
    return value


def to_field_elements(value: Any) -> List[Scalar]:
    """承诺输出 -> 有序域元素列表。整数输出对应单个元素，序列逐个转换。"""
    if isinstance(value, (list, tuple)):
        return [to_field_element(v) for v in value]
    return [to_field_element(value)]


# --- 标量乘 ---
class FixedBaseTable:
    """
    固定基窗口表：windows[w][d] = d * 2^(w*WINDOW) * base。
    密钥生成时所有点都是生成元的倍数，用查表加法代替逐次倍点。
    """

    WINDOW = 4

    def __init__(self, base: Any, identity: Any):
        self.identity = identity
        self.windows: List[List[Any]] = []
        cur = base
        num_windows = -(-CURVE_ORDER.bit_length() // self.WINDOW)
        for _ in range(num_windows):
            row = [identity]
            acc = identity
            for _ in range(1, 1 << self.WINDOW):
                acc = add(acc, cur)
                row.append(acc)
            self.windows.append(row)
            cur = add(row[-1], cur)

    def mul(self, k: Scalar) -> Any:
        k %= CURVE_ORDER
        mask = (1 << self.WINDOW) - 1
        acc = self.identity
        w = 0
        while k:
            d = k & mask
            if d:
                acc = add(acc, self.windows[w][d])
            k >>= self.WINDOW
            w += 1
        return acc

    def batch_mul(self, scalars: Sequence[Scalar]) -> List[Any]:
        return [self.mul(k) for k in scalars]


def _window_size(n: int) -> int:
    if n < 32:
        return 3
    return max(4, n.bit_length() - 2)


def multiexp(points: Sequence[Any], scalars: Sequence[Scalar], identity: Any) -> Any:
    """
    多标量乘 Σ scalars[i] * points[i]（Pippenger 桶算法）。
    标量为 0 或点为无穷远点的项直接跳过。
    """
    pairs: List[Tuple[Any, int]] = []
    for p, s in zip(points, scalars):
        s %= CURVE_ORDER
        if s and not is_inf(p):
            pairs.append((p, s))
    if not pairs:
        return identity
    if len(pairs) < 4:
        acc = identity
        for p, s in pairs:
            acc = add(acc, multiply(p, s))
        return acc

    c = _window_size(len(pairs))
    mask = (1 << c) - 1
    result = identity
    for shift in reversed(range(0, CURVE_ORDER.bit_length(), c)):
        for _ in range(c):
            result = double(result)
        buckets: List[Optional[Any]] = [None] * mask
        for p, s in pairs:
            d = (s >> shift) & mask
            if d:
                cur = buckets[d - 1]
                buckets[d - 1] = p if cur is None else add(cur, p)
        running = identity
        window_sum = identity
        for bucket in reversed(buckets):
            if bucket is not None:
                running = add(running, bucket)
            window_sum = add(window_sum, running)
        result = add(result, window_sum)
    return result


# --- 内部工具：提取 int/坐标 ---
def _int_of(x: Any) -> int:
    if hasattr(x, "n"):
        return int(x.n)
    return int(x)


def _fq2_to_pair(x: Any) -> Tuple[int, int]:
    # FQ2 的 coeffs 成员为 (c0, c1)
    a, b = x.coeffs
    return _int_of(a), _int_of(b)


# --- 序列化 / 反序列化（bytes） ---
# 约定（先归一化为仿射坐标，z = 1）：
# - G1: x(32) || y(32) || z(32) 共 96 字节，无穷远点用全 0 表示
# - G2: x.c0(32)||x.c1(32)||y.c0(32)||y.c1(32)||z.c0(32)||z.c1(32) 共 192 字节，无穷远点同理全 0
def serialize_g1(p: G1Element) -> bytes:
    if is_inf(p):
        return b"\x00" * 96
    x, y = normalize(p)
    return _int_of(x).to_bytes(32, "big") + _int_of(y).to_bytes(32, "big") + (1).to_bytes(32, "big")


def deserialize_g1(b: bytes) -> G1Element:
    if len(b) != 96:
        raise ValueError("G1 序列化长度应为 96 字节")
    if b == b"\x00" * 96:
        return G1_IDENTITY
    x = int.from_bytes(b[0:32], "big")
    y = int.from_bytes(b[32:64], "big")
    z = int.from_bytes(b[64:96], "big")
    return (FQ(x), FQ(y), FQ(z))


def serialize_g2(p: G2Element) -> bytes:
    if is_inf(p):
        return b"\x00" * 192
    X, Y = normalize(p)
    x0, x1 = _fq2_to_pair(X)
    y0, y1 = _fq2_to_pair(Y)
    return (
        x0.to_bytes(32, "big") + x1.to_bytes(32, "big") +
        y0.to_bytes(32, "big") + y1.to_bytes(32, "big") +
        (1).to_bytes(32, "big") + (0).to_bytes(32, "big")
    )


def deserialize_g2(b: bytes) -> G2Element:
    if len(b) != 192:
        raise ValueError("G2 序列化长度应为 192 字节")
    if b == b"\x00" * 192:
        return G2_IDENTITY
    x0 = int.from_bytes(b[0:32], "big")
    x1 = int.from_bytes(b[32:64], "big")
    y0 = int.from_bytes(b[64:96], "big")
    y1 = int.from_bytes(b[96:128], "big")
    z0 = int.from_bytes(b[128:160], "big")
    z1 = int.from_bytes(b[160:192], "big")
    X = FQ2([x0, x1])
    Y = FQ2([y0, y1])
    Z = FQ2([z0, z1])
    return (X, Y, Z)
