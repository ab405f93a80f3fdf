"""
通用工具函数模块

- MiMC-7 置换（BN254 标量域）与 Miyaguchi-Preneel 压缩（MultiMiMC7），供树哈希与承诺方案在电路外计算；
  电路内的逐轮实现见 circuits/gadgets.py，两者必须逐轮一致。
- 字节到字段元素的映射。
- 日志记录辅助函数（init_logging / log_msg）。
"""
import hashlib
import logging
from logging.handlers import RotatingFileHandler
from functools import lru_cache
from typing import List, Sequence, Tuple

from crypto import CURVE_ORDER as FIELD_PRIME  # 使用 BN254 曲线阶作为字段素数

DEFAULT_MIMC_SEED = b"MIMC7_BN254_CONST"
DEFAULT_MIMC_ROUNDS = 91


# ---------------------------- SNARK 友好哈希（MiMC-7 over BN254） ----------------------------

@lru_cache(maxsize=None)
def mimc_constants(rounds: int = DEFAULT_MIMC_ROUNDS, seed: bytes = DEFAULT_MIMC_SEED) -> Tuple[int, ...]:
    """
    生成 MiMC-7 的轮常量，确定性（从固定种子派生），对 BN254 的字段取模。
    """
    if rounds < 1:
        raise ValueError("MiMC 轮数至少为 1")
    consts: List[int] = []
    state = seed
    for i in range(rounds):
        # 简单的确定性常量派生：迭代哈希再取模
        state = hashlib.sha256(state + i.to_bytes(4, "big")).digest()
        consts.append(int.from_bytes(state, "big") % FIELD_PRIME)
    return tuple(consts)


def mimc7_permute(x: int, k: int, constants: Sequence[int]) -> int:
    """
    MiMC-7 分组加密 E_k(x)：每轮 x <- (x + k + c_i)^7 (mod p)，最后 x <- x + k (mod p)。
    """
    p = FIELD_PRIME
    x %= p
    k %= p
    for c in constants:
        t = (x + k + c) % p
        x = pow(t, 7, p)
    return (x + k) % p


def mimc_hash(elems: Sequence[int], iv: int, constants: Sequence[int]) -> int:
    """
    多输入 MiMC 哈希（Miyaguchi-Preneel 模式）：h <- h + m + E_h(m)，h 初值为 iv。
    """
    p = FIELD_PRIME
    h = iv % p
    for m in elems:
        m %= p
        h = (h + m + mimc7_permute(m, h, constants)) % p
    return h


def bytes_to_field_elems(data: bytes, chunk_size: int = 31) -> List[int]:
    """
    将任意字节流分块映射到 BN254 字段元素列表（31字节一块，确保 < p）。
    空输入映射为 [0]。
    """
    if not data:
        return [0]
    elems: List[int] = []
    for i in range(0, len(data), chunk_size):
        chunk = data[i:i + chunk_size]
        elems.append(int.from_bytes(chunk, "big") % FIELD_PRIME)
    return elems


def hash_to_field(data: bytes, constants: Sequence[int] = None) -> int:
    """
    将任意字节流哈希为一个字段元素（MiMC 压缩，iv 为 0）。用于派生域分离标签。
    """
    if constants is None:
        constants = mimc_constants()
    return mimc_hash(bytes_to_field_elems(data), 0, constants)


# ---------------------------- 日志记录辅助函数 ----------------------------

_LOG_INITIALIZED = False
_LOGGER = logging.getLogger("zkcred")


def init_logging(log_file: str = "zkcred.log", level: str = "DEBUG", console: bool = True,
                 max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
    """
    初始化全局日志记录器。

    :param log_file: 日志文件名。
    :param level: 日志级别字符串 (例如, "DEBUG", "INFO", "WARN")。
    :param console: 如果为True，日志也会输出到控制台。
    :param max_bytes: 每个日志文件的最大大小（字节）。
    :param backup_count: 保留的旧日志文件数量。
    """
    global _LOG_INITIALIZED
    if _LOG_INITIALIZED:
        return

    log_level = _to_logging_level(level)

    _LOGGER.setLevel(log_level)
    _LOGGER.propagate = False  # 防止日志向上传播到根记录器，避免重复输出

    # 定义日志格式
    fmt = logging.Formatter(fmt="%(asctime)s %(levelname)-7s %(message)s", datefmt="%H:%M:%S")

    # 文件处理器，支持日志文件滚动
    fh = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    fh.setLevel(log_level)
    fh.setFormatter(fmt)
    _LOGGER.addHandler(fh)

    # 如果需要，添加控制台处理器
    if console:
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(fmt)
        _LOGGER.addHandler(ch)

    _LOG_INITIALIZED = True


def _to_logging_level(level: str) -> int:
    """将字符串形式的日志级别转换为logging库的常量。"""
    level = (level or "INFO").upper()
    return {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARN": logging.WARNING,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }.get(level, logging.INFO)


def log_msg(level, actor_type, actor_id, msg: str):
    """
    记录一条结构化的日志消息。

    :param level: 日志级别 (例如, "INFO", "DEBUG")。
    :param actor_type: 产生日志的模块或角色类型 (例如, "TREE", "GROTH16", "ISSUER")。
    :param actor_id: 参与者的唯一ID，对于系统级日志可为None。
    :param msg: 日志消息内容。
    """
    if not _LOG_INITIALIZED:
        # 如果日志系统未初始化，则使用默认配置进行初始化
        init_logging()

    # 格式化日志前缀，包含参与者信息
    who = f"{actor_type}({actor_id})" if actor_id else actor_type
    _LOGGER.log(_to_logging_level(level), f"{who}: {msg}")
