from dataclasses import dataclass

from primitives.mimc import ATTRS_DOMAIN, ROOT_DOMAIN, MiMCCommitment, MiMCParams, MiMCTwoToOne
from utils import DEFAULT_MIMC_ROUNDS, DEFAULT_MIMC_SEED, init_logging


@dataclass
class ZkCredConfig:
    """凭证系统的配置参数"""
    tree_height: int = 32
    mimc_rounds: int = DEFAULT_MIMC_ROUNDS
    mimc_seed: bytes = DEFAULT_MIMC_SEED
    log_file: str = "zkcred.log"
    log_level: str = "INFO"
    log_console: bool = True

    def tree_hash_params(self) -> MiMCParams:
        return MiMCTwoToOne.setup(self.mimc_rounds, self.mimc_seed)

    def attrs_commitment(self) -> MiMCCommitment:
        return MiMCCommitment.setup(self.mimc_rounds, self.mimc_seed, ATTRS_DOMAIN)

    def root_commitment(self) -> MiMCCommitment:
        return MiMCCommitment.setup(self.mimc_rounds, self.mimc_seed, ROOT_DOMAIN)

    def setup_logging(self):
        init_logging(self.log_file, self.log_level, self.log_console)
