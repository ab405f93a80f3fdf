"""
Groth16 zk-SNARK（BN128，py_ecc）

电路对象只需实现 generate_constraints(cs)。流程：
- generate_parameters：以 SETUP 模式合成电路，采样 τ, α, β, γ, δ，计算各变量的 QAP 多项式在 τ 处的取值，生成密钥；
- create_proof：以 PROVE 模式合成电路，检查可满足性与形状，计算商多项式 H，并以新鲜随机数 r, s 盲化；
- verify_proof：e(A, B) == e(α, β) · e(Σ x_i·γ_abc_i, γ) · e(C, δ)。验证对任何类型正确的输入都只返回布尔值。

与 bellman/arkworks 一致，每个公开输入（含常数 1）额外追加一条 x_i * 0 = 0 约束，保证输入多项式线性无关。
"""
import time
from typing import Any, List, Optional, Sequence, Union

from circuits.r1cs import ONE, ConstraintSystem, LinComb, SynthesisMode
from common.datastructures import PreparedVerifyingKey, Proof, ProvingKey, VerifyingKey
from common.errors import SynthesisError, UnsatisfiedConstraintError
from crypto import (
    CURVE_ORDER,
    G1_IDENTITY, G2_IDENTITY,
    FixedBaseTable,
    add,
    g1_generator, g2_generator,
    g1_on_curve, g2_on_curve, g2_in_subgroup,
    multiexp,
    multiply,
    pairing_g2_g1,
    random_scalar,
)
from snark.domain import EvaluationDomain
from utils import log_msg


class Groth16:
    """Groth16 证明系统：密钥生成、证明生成与验证。"""

    @staticmethod
    def synthesize(circuit: Any, mode: SynthesisMode) -> ConstraintSystem:
        cs = ConstraintSystem(mode)
        circuit.generate_constraints(cs)
        for i in range(cs.num_inputs + 1):
            var = ONE if i == 0 else ("input", i - 1)
            cs.enforce(LinComb({var: 1}), 0, 0, f"input_{i}")
        return cs

    @staticmethod
    def generate_parameters(circuit: Any, rng: Optional[Any] = None, label: str = "") -> ProvingKey:
        """一次性密钥生成。电路只用于固定拓扑，其见证值不参与计算。"""
        started = time.perf_counter()
        cs = Groth16.synthesize(circuit, SynthesisMode.SETUP)
        domain = EvaluationDomain.new(cs.num_constraints)
        p = CURVE_ORDER

        tau = random_scalar(rng)
        while domain.evaluate_vanishing_polynomial(tau) == 0:
            tau = random_scalar(rng)
        alpha, beta, gamma, delta = (random_scalar(rng) for _ in range(4))

        # 各变量的 A/B/C 多项式在 τ 处的取值
        lagrange = domain.evaluate_all_lagrange_coefficients(tau)
        num_vars = 1 + cs.num_inputs + cs.num_aux
        a_tau = [0] * num_vars
        b_tau = [0] * num_vars
        c_tau = [0] * num_vars
        for (a, b, c, _), u in zip(cs.constraints, lagrange):
            for var, coeff in a.terms.items():
                a_tau[cs.index_of(var)] += u * coeff
            for var, coeff in b.terms.items():
                b_tau[cs.index_of(var)] += u * coeff
            for var, coeff in c.terms.items():
                c_tau[cs.index_of(var)] += u * coeff
        a_tau = [v % p for v in a_tau]
        b_tau = [v % p for v in b_tau]
        c_tau = [v % p for v in c_tau]

        gamma_inv = pow(gamma, -1, p)
        delta_inv = pow(delta, -1, p)
        g1 = FixedBaseTable(g1_generator, G1_IDENTITY)
        g2 = FixedBaseTable(g2_generator, G2_IDENTITY)

        num_public = cs.num_inputs + 1
        gamma_abc = [
            g1.mul((beta * a_tau[i] + alpha * b_tau[i] + c_tau[i]) * gamma_inv)
            for i in range(num_public)
        ]
        l_query = [
            g1.mul((beta * a_tau[i] + alpha * b_tau[i] + c_tau[i]) * delta_inv)
            for i in range(num_public, num_vars)
        ]
        zt_delta = domain.evaluate_vanishing_polynomial(tau) * delta_inv % p
        h_scalars = []
        t = 1
        for _ in range(domain.size - 1):
            h_scalars.append(t * zt_delta % p)
            t = t * tau % p

        vk = VerifyingKey(
            alpha_g1=g1.mul(alpha),
            beta_g2=g2.mul(beta),
            gamma_g2=g2.mul(gamma),
            delta_g2=g2.mul(delta),
            gamma_abc_g1=tuple(gamma_abc),
            label=label,
        )
        pk = ProvingKey(
            vk=vk,
            beta_g1=g1.mul(beta),
            delta_g1=g1.mul(delta),
            a_query=tuple(g1.batch_mul(a_tau)),
            b_g1_query=tuple(g1.batch_mul(b_tau)),
            b_g2_query=tuple(g2.batch_mul(b_tau)),
            h_query=tuple(g1.batch_mul(h_scalars)),
            l_query=tuple(l_query),
            shape=cs.shape(),
        )
        log_msg("INFO", "GROTH16", label or None,
                f"密钥生成完成：{cs.num_constraints} 条约束，{cs.num_inputs} 个公开输入，"
                f"{cs.num_aux} 个见证，求值域 {domain.size}，耗时 {time.perf_counter() - started:.2f}s")
        return pk

    @staticmethod
    def _compute_h(domain: EvaluationDomain, cs: ConstraintSystem, z: Sequence[int]) -> List[int]:
        """H(X) = (A(X)·B(X) - C(X)) / Z(X)，在陪集上逐点相除后插值回系数。"""
        p = CURVE_ORDER

        def evaluate(lc: LinComb) -> int:
            return sum(coeff * z[cs.index_of(var)] for var, coeff in lc.terms.items()) % p

        a_evals = [evaluate(a) for a, _, _, _ in cs.constraints]
        b_evals = [evaluate(b) for _, b, _, _ in cs.constraints]
        c_evals = [evaluate(c) for _, _, c, _ in cs.constraints]

        a_coset = domain.coset_fft(domain.ifft(a_evals))
        b_coset = domain.coset_fft(domain.ifft(b_evals))
        c_coset = domain.coset_fft(domain.ifft(c_evals))
        h_evals = [(x * y - w) % p for x, y, w in zip(a_coset, b_coset, c_coset)]
        domain.divide_by_vanishing_poly_on_coset_in_place(h_evals)
        h = domain.coset_ifft(h_evals)
        return h[:domain.size - 1]

    @staticmethod
    def create_proof(circuit: Any, pk: ProvingKey, rng: Optional[Any] = None) -> Proof:
        """用真实见证生成证明。setup 电路、形状不符或见证不满足约束时抛出 SynthesisError。"""
        if getattr(circuit, "is_setup", False):
            raise SynthesisError("setup 模式的占位电路不能用于生成证明")
        started = time.perf_counter()
        cs = Groth16.synthesize(circuit, SynthesisMode.PROVE)
        if cs.shape() != pk.shape:
            raise SynthesisError(f"电路形状 {cs.shape()} 与证明密钥 {pk.shape} 不一致")
        unsatisfied = cs.which_is_unsatisfied()
        if unsatisfied is not None:
            raise UnsatisfiedConstraintError(unsatisfied)

        p = CURVE_ORDER
        z = cs.full_assignment()
        domain = EvaluationDomain.new(cs.num_constraints)
        h = Groth16._compute_h(domain, cs, z)
        aux = z[1 + cs.num_inputs:]

        r = random_scalar(rng)
        s = random_scalar(rng)
        vk = pk.vk

        a_acc = multiexp(pk.a_query, z, G1_IDENTITY)
        b_g1_acc = multiexp(pk.b_g1_query, z, G1_IDENTITY)
        b_g2_acc = multiexp(pk.b_g2_query, z, G2_IDENTITY)
        l_acc = multiexp(pk.l_query, aux, G1_IDENTITY)
        h_acc = multiexp(pk.h_query, h, G1_IDENTITY)

        g_a = add(add(vk.alpha_g1, a_acc), multiply(pk.delta_g1, r))
        g1_b = add(add(pk.beta_g1, b_g1_acc), multiply(pk.delta_g1, s))
        g_b = add(add(vk.beta_g2, b_g2_acc), multiply(vk.delta_g2, s))

        g_c = add(l_acc, h_acc)
        g_c = add(g_c, multiply(g_a, s))
        g_c = add(g_c, multiply(g1_b, r))
        g_c = add(g_c, multiply(pk.delta_g1, (-r * s) % p))

        log_msg("DEBUG", "GROTH16", pk.label or None,
                f"证明生成完成：{cs.num_constraints} 条约束，耗时 {time.perf_counter() - started:.2f}s")
        return Proof(a=g_a, b=g_b, c=g_c)

    @staticmethod
    def prepare_verifying_key(vk: VerifyingKey) -> PreparedVerifyingKey:
        return PreparedVerifyingKey(vk=vk, alpha_g1_beta_g2=pairing_g2_g1(vk.beta_g2, vk.alpha_g1))

    @staticmethod
    def as_prepared(key: Union[VerifyingKey, PreparedVerifyingKey]) -> PreparedVerifyingKey:
        """接受 VerifyingKey 或 PreparedVerifyingKey；后者原样返回。"""
        if isinstance(key, PreparedVerifyingKey):
            return key
        return Groth16.prepare_verifying_key(key)

    @staticmethod
    def inputs_are_canonical(public_inputs: Sequence[Any]) -> bool:
        return all(
            isinstance(x, int) and not isinstance(x, bool) and 0 <= x < CURVE_ORDER
            for x in public_inputs
        )

    @staticmethod
    def prepare_inputs(pvk: PreparedVerifyingKey, public_inputs: Sequence[int], offset: int = 0) -> Any:
        """
        Σ x_i · gamma_abc[1 + offset + i]，不含 gamma_abc[0]。
        offset 允许只折叠公开输入向量的一段（例如谓词的固定标量）。
        """
        bases = pvk.vk.gamma_abc_g1[1 + offset:1 + offset + len(public_inputs)]
        return multiexp(bases, public_inputs, G1_IDENTITY)

    @staticmethod
    def verify_proof_with_prepared_inputs(pvk: PreparedVerifyingKey, proof: Proof, prepared_inputs: Any) -> bool:
        """prepared_inputs 为完整的 Σ x_i·γ_abc_i（含 gamma_abc[0]）。"""
        if not Groth16.proof_is_well_formed(proof):
            return False
        vk = pvk.vk
        lhs = pairing_g2_g1(proof.b, proof.a)
        rhs = pvk.alpha_g1_beta_g2 * pairing_g2_g1(vk.gamma_g2, prepared_inputs) * pairing_g2_g1(vk.delta_g2, proof.c)
        return lhs == rhs

    @staticmethod
    def proof_is_well_formed(proof: Any) -> bool:
        try:
            return (g1_on_curve(proof.a) and g1_on_curve(proof.c)
                    and g2_on_curve(proof.b) and g2_in_subgroup(proof.b))
        except (AttributeError, TypeError, ValueError):
            return False

    @staticmethod
    def verify_proof(pvk: PreparedVerifyingKey, proof: Proof, public_inputs: Sequence[int]) -> bool:
        """
        验证证明。公开输入个数不符、不是规范域元素、证明点不在曲线上或 B 不在 G2 子群中时返回 False。
        """
        if len(public_inputs) != pvk.vk.num_public_inputs:
            log_msg("DEBUG", "GROTH16", pvk.vk.label or None,
                    f"公开输入个数 {len(public_inputs)} 与验证密钥 {pvk.vk.num_public_inputs} 不一致")
            return False
        if not Groth16.inputs_are_canonical(public_inputs):
            return False
        acc = add(pvk.vk.gamma_abc_g1[0], Groth16.prepare_inputs(pvk, public_inputs))
        return Groth16.verify_proof_with_prepared_inputs(pvk, proof, acc)
