"""
电路小部件（gadgets）

- 布尔变量、比特分解与比较；
- MiMC-7 分组加密与 Miyaguchi-Preneel 压缩的电路内实现，与 utils.mimc7_permute / utils.mimc_hash 逐轮一致；
- 二选一成员约束 (x - l) * (x - r) = 0，用于认证路径的逐层检查。
"""
from typing import List, Sequence, Tuple, Union

from circuits.r1cs import ConstraintSystem, LinComb
from common.errors import SynthesisError
from crypto import CURVE_ORDER as FIELD_PRIME

Value = Union[LinComb, int]


def enforce_boolean(cs: ConstraintSystem, b: Value, name: str = "bool"):
    """b * (b - 1) = 0"""
    b = LinComb.coerce(b)
    cs.enforce(b, b - 1, 0, name)


def alloc_boolean(cs: ConstraintSystem, value: bool, name: str = "bool") -> LinComb:
    b = cs.alloc_witness(1 if value else 0, name)
    enforce_boolean(cs, b, name)
    return b


def enforce_true(cs: ConstraintSystem, b: Value, name: str = "is_true"):
    cs.enforce_equal(b, 1, name)


def enforce_one_of(cs: ConstraintSystem, x: Value, pair: Tuple[Value, Value], name: str = "one_of"):
    """(x - l) * (x - r) = 0，即 x 等于 l 或 r。"""
    left, right = pair
    x = LinComb.coerce(x)
    cs.enforce(x - left, x - right, 0, name)


def to_bits_le(cs: ConstraintSystem, x: Value, num_bits: int, name: str = "bits") -> List[LinComb]:
    """
    把 x 分解为 num_bits 个小端比特并约束 Σ b_i 2^i = x。
    x 不在 [0, 2^num_bits) 内时约束不可满足。
    """
    if not 0 < num_bits < FIELD_PRIME.bit_length():
        raise SynthesisError(f"非法比特长度: {num_bits}")
    x = LinComb.coerce(x)
    v = cs.value(x)
    bits: List[LinComb] = []
    with cs.namespace(name):
        for i in range(num_bits):
            bits.append(alloc_boolean(cs, (v >> i) & 1, f"b{i}"))
        cs.enforce_equal(sum((b * (1 << i) for i, b in enumerate(bits)), LinComb()), x, "recompose")
    return bits


def is_less_or_equal(cs: ConstraintSystem, x: Value, y: Value, num_bits: int, name: str = "le") -> LinComb:
    """
    返回布尔变量 [x <= y]。x 与 y 都被约束在 [0, 2^num_bits) 内；
    结果取自 2^num_bits + y - x 的第 num_bits 位。
    """
    with cs.namespace(name):
        to_bits_le(cs, x, num_bits, "range_x")
        to_bits_le(cs, y, num_bits, "range_y")
        diff = LinComb.coerce(y) - x + (1 << num_bits)
        bits = to_bits_le(cs, diff, num_bits + 1, "diff")
    return bits[num_bits]


def mimc7_gadget(cs: ConstraintSystem, x: Value, k: Value, constants: Sequence[int], name: str = "mimc7") -> LinComb:
    """E_k(x)：每轮 t = x + k + c_i，x <- t^7（4 条约束），最后加 k。"""
    x, k = LinComb.coerce(x), LinComb.coerce(k)
    with cs.namespace(name):
        for i, c in enumerate(constants):
            t = x + k + c
            t2 = cs.mul(t, t, f"r{i}_t2")
            t4 = cs.mul(t2, t2, f"r{i}_t4")
            t6 = cs.mul(t4, t2, f"r{i}_t6")
            x = cs.mul(t6, t, f"r{i}_t7")
    return x + k


def mimc_hash_gadget(cs: ConstraintSystem, elems: Sequence[Value], iv: int, constants: Sequence[int],
                     name: str = "mimc_hash") -> LinComb:
    """h <- h + m + E_h(m)，h 初值为 iv。"""
    h = LinComb.constant(iv)
    with cs.namespace(name):
        for j, m in enumerate(elems):
            m = LinComb.coerce(m)
            h = h + m + mimc7_gadget(cs, m, h, constants, f"block{j}")
    return h
