"""
SimPy 仿真入口

- 持有者在时间窗口内随机到达，向发行方登记属性承诺；
- 发行方周期性发布承诺树的根；
- 持有者在自己的承诺被发布后，针对验证方的谓词生成凭证包并提交；
- 验证方只接受基于已发布根的凭证，输出结构化日志（写入 zkcred.log）。

属性记录类型与谓词由调用方提供（attrs_factory / checker），仿真本身与属性编码无关。
"""
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

import simpy

from config import ZkCredConfig
from circuits.predicate import gen_pred_crs
from common.errors import UnsatisfiedConstraintError
from roles.holder import Holder
from roles.issuer import Issuer
from roles.verifier import Verifier
from trees import gen_tree_memb_crs
from utils import log_msg


@dataclass
class SimConfig:
    """仿真配置参数集合。"""
    num_holders: int = 4
    holder_arrival_window: float = 2.0
    publish_interval: float = 0.5
    seed: int = 42
    zk: ZkCredConfig = field(default_factory=lambda: ZkCredConfig(tree_height=4))


@dataclass
class SimResult:
    accepted: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    declined: List[str] = field(default_factory=list)
    published_roots: List[int] = field(default_factory=list)


def holder_proc(env: simpy.Environment, holder: Holder, issuer: Issuer, verifier: Verifier, ctx: Dict[str, Any],
                cfg: SimConfig, rng: random.Random, result: SimResult, done: simpy.Event):
    """持有者进程：随机到达 -> 登记承诺 -> 等待根发布 -> 生成并提交凭证包。"""
    yield env.timeout(rng.random() * cfg.holder_arrival_window)
    idx, com = issuer.issue(holder.holder_id, holder.attrs)
    holder.accept(idx, com)
    log_msg("INFO", "HOLDER", holder.holder_id, f"[t={env.now:.2f}] 获得下标 {idx}")

    # 等到包含自己承诺的根被发布
    while True:
        tree = issuer.published_snapshot()
        if tree.get(idx) == com:
            break
        yield env.timeout(cfg.publish_interval)

    try:
        bundle = holder.present(tree, ctx["tree_pk"], ctx["pred_pk"], verifier.checker, ctx["root_commitment"], rng)
    except UnsatisfiedConstraintError as e:
        log_msg("INFO", "HOLDER", holder.holder_id, f"[t={env.now:.2f}] 属性不满足谓词，放弃出示（{e.constraint}）")
        result.declined.append(holder.holder_id)
    else:
        verifier.trust_roots(issuer.published_roots)
        if verifier.verify(bundle):
            result.accepted.append(holder.holder_id)
        else:
            result.rejected.append(holder.holder_id)
        log_msg("INFO", "HOLDER", holder.holder_id, f"[t={env.now:.2f}] 凭证已提交")
    done.succeed()


def issuer_proc(env: simpy.Environment, issuer: Issuer, cfg: SimConfig, all_done: simpy.Event):
    """发行方进程：周期性发布根，直到所有持有者完成。"""
    while not all_done.triggered:
        yield env.timeout(cfg.publish_interval)
        issuer.publish_root()
    log_msg("INFO", "SYSTEM", None, f"[t={env.now:.2f}] 发行方停止发布")


def run_simulation(attrs_factory: Callable[[int, random.Random], Any], checker, cfg: SimConfig = None) -> SimResult:
    """
    运行完整仿真。

    :param attrs_factory: (持有者序号, rng) -> 属性记录；同一次仿真中所有记录须为同一类型。
    :param checker: 验证方选定的谓词。
    :param cfg: 仿真配置。
    """
    if cfg is None:
        cfg = SimConfig()
    if cfg.num_holders < 1:
        raise ValueError("至少需要一个持有者")
    cfg.zk.setup_logging()
    rng = random.Random(cfg.seed)
    env = simpy.Environment()

    crh_params = cfg.zk.tree_hash_params()
    root_commitment = cfg.zk.root_commitment()
    holders = [Holder(f"holder-{i}", attrs_factory(i, rng)) for i in range(cfg.num_holders)]
    attrs_type = type(holders[0].attrs)

    tree_pk, tree_vk = gen_tree_memb_crs(crh_params, cfg.zk.tree_height, rng=rng)
    pred_pk, pred_vk = gen_pred_crs(checker, attrs_type, rng=rng)
    ctx = {"tree_pk": tree_pk, "pred_pk": pred_pk, "root_commitment": root_commitment}

    issuer = Issuer("issuer-0", crh_params, cfg.zk.tree_height)
    verifier = Verifier("verifier-0", tree_vk, pred_vk, checker, root_commitment)
    result = SimResult()

    done_events = []
    for holder in holders:
        done = env.event()
        done_events.append(done)
        env.process(holder_proc(env, holder, issuer, verifier, ctx, cfg, rng, result, done))
    all_done = env.all_of(done_events)
    env.process(issuer_proc(env, issuer, cfg, all_done))

    env.run(until=all_done)
    result.published_roots = list(issuer.published_roots)
    log_msg("INFO", "SYSTEM", None,
            f"[t={env.now:.2f}] 仿真结束：接受 {len(result.accepted)}，拒绝 {len(result.rejected)}，"
            f"放弃 {len(result.declined)}，发布根 {len(result.published_roots)} 个")
    return result
