"""
BN254 标量域上的乘法子群求值域（radix-2 FFT）

- 域大小为不小于约束数的 2 的幂，生成元为 2-adic 单位根的相应次幂；
- 提供 fft / ifft / coset_fft / coset_ifft、消失多项式与全部拉格朗日基在任意点的取值。
"""
from typing import List, Sequence

from crypto import CURVE_ORDER as FIELD_PRIME
from common.errors import SynthesisError

TWO_ADICITY = ((FIELD_PRIME - 1) & -(FIELD_PRIME - 1)).bit_length() - 1


def _find_non_residue() -> int:
    g = 2
    while pow(g, (FIELD_PRIME - 1) // 2, FIELD_PRIME) != FIELD_PRIME - 1:
        g += 1
    return g


# 最小二次非剩余；其 (p-1)/2^s 次幂是阶恰为 2^s 的单位根，本身也用作陪集偏移
GENERATOR = _find_non_residue()
TWO_ADIC_ROOT_OF_UNITY = pow(GENERATOR, (FIELD_PRIME - 1) >> TWO_ADICITY, FIELD_PRIME)


def _bit_reverse(a: List[int]):
    n = len(a)
    j = 0
    for i in range(1, n):
        bit = n >> 1
        while j & bit:
            j ^= bit
            bit >>= 1
        j ^= bit
        if i < j:
            a[i], a[j] = a[j], a[i]


def _fft(values: Sequence[int], omega: int) -> List[int]:
    p = FIELD_PRIME
    a = [v % p for v in values]
    n = len(a)
    _bit_reverse(a)
    length = 2
    while length <= n:
        w_len = pow(omega, n // length, p)
        half = length >> 1
        twiddles = [1] * half
        for k in range(1, half):
            twiddles[k] = twiddles[k - 1] * w_len % p
        for start in range(0, n, length):
            for k in range(half):
                u = a[start + k]
                v = a[start + k + half] * twiddles[k] % p
                a[start + k] = (u + v) % p
                a[start + k + half] = (u - v) % p
        length <<= 1
    return a


class EvaluationDomain:
    """大小为 2^k 的求值域 {ω^0, ..., ω^(n-1)}。"""

    def __init__(self, log_size: int):
        if log_size > TWO_ADICITY:
            raise SynthesisError(f"约束数过多：求值域大小 2^{log_size} 超过 2^{TWO_ADICITY}")
        p = FIELD_PRIME
        self.log_size = log_size
        self.size = 1 << log_size
        self.group_gen = pow(TWO_ADIC_ROOT_OF_UNITY, 1 << (TWO_ADICITY - log_size), p)
        self.group_gen_inv = pow(self.group_gen, -1, p)
        self.size_inv = pow(self.size, -1, p)
        self.coset_gen = GENERATOR
        self.coset_gen_inv = pow(GENERATOR, -1, p)
        if pow(self.coset_gen, self.size, p) == 1:
            raise SynthesisError("陪集偏移落在求值域内")

    @classmethod
    def new(cls, num_coeffs: int) -> "EvaluationDomain":
        """返回能容纳 num_coeffs 个点的最小求值域。"""
        log_size = max(1, (num_coeffs - 1).bit_length())
        return cls(log_size)

    def elements(self) -> List[int]:
        out = [1] * self.size
        for i in range(1, self.size):
            out[i] = out[i - 1] * self.group_gen % FIELD_PRIME
        return out

    def _pad(self, values: Sequence[int]) -> List[int]:
        if len(values) > self.size:
            raise SynthesisError(f"长度 {len(values)} 超出求值域大小 {self.size}")
        return list(values) + [0] * (self.size - len(values))

    def fft(self, coeffs: Sequence[int]) -> List[int]:
        return _fft(self._pad(coeffs), self.group_gen)

    def ifft(self, evals: Sequence[int]) -> List[int]:
        out = _fft(self._pad(evals), self.group_gen_inv)
        return [v * self.size_inv % FIELD_PRIME for v in out]

    def coset_fft(self, coeffs: Sequence[int]) -> List[int]:
        p = FIELD_PRIME
        shifted = []
        g = 1
        for c in self._pad(coeffs):
            shifted.append(c * g % p)
            g = g * self.coset_gen % p
        return _fft(shifted, self.group_gen)

    def coset_ifft(self, evals: Sequence[int]) -> List[int]:
        p = FIELD_PRIME
        coeffs = self.ifft(evals)
        g = 1
        for i in range(len(coeffs)):
            coeffs[i] = coeffs[i] * g % p
            g = g * self.coset_gen_inv % p
        return coeffs

    def evaluate_vanishing_polynomial(self, tau: int) -> int:
        """Z(τ) = τ^n - 1"""
        return (pow(tau, self.size, FIELD_PRIME) - 1) % FIELD_PRIME

    def divide_by_vanishing_poly_on_coset_in_place(self, evals: List[int]):
        p = FIELD_PRIME
        z_inv = pow((pow(self.coset_gen, self.size, p) - 1) % p, -1, p)
        for i in range(len(evals)):
            evals[i] = evals[i] * z_inv % p

    def evaluate_all_lagrange_coefficients(self, tau: int) -> List[int]:
        """
        L_i(τ) = Z(τ) / n * ω^i / (τ - ω^i)；τ 落在域内时退化为指示向量。
        """
        p = FIELD_PRIME
        z = self.evaluate_vanishing_polynomial(tau)
        elements = self.elements()
        if z == 0:
            return [1 if w == tau % p else 0 for w in elements]
        l = z * self.size_inv % p
        return [l * w % p * pow((tau - w) % p, -1, p) % p for w in elements]
