import threading
from typing import Dict, List, Optional, Tuple

from common.errors import IndexOutOfRangeError
from primitives.mimc import MiMCTwoToOne
from trees import ComTree
from utils import log_msg


class Issuer:
    """
    发行方：为持有者的属性承诺分配树中位置，维护承诺树并发布根。
    树本身不加锁，所有修改都在 self._lock 内完成；证明方拿到的是 snapshot() 的副本。
    """

    def __init__(self, issuer_id: str, crh_params, height: int, crh=MiMCTwoToOne):
        self.issuer_id = issuer_id
        self.tree = ComTree.empty(crh_params, height, hash=crh)
        self._lock = threading.Lock()
        self._next_index = 0
        self.assignments: Dict[str, int] = {}
        self.published_roots: List[int] = [self.tree.root()]
        self._published_tree = self.tree.copy()

    def issue(self, holder_id: str, attrs) -> Tuple[int, int]:
        """
        为持有者登记属性承诺。

        :return: (叶子下标, 属性承诺)
        """
        attrs_com = attrs.commit()
        with self._lock:
            if holder_id in self.assignments:
                idx = self.assignments[holder_id]
            else:
                idx = self._next_index
                if idx >= 1 << self.tree.height:
                    log_msg("ERROR", "ISSUER", self.issuer_id, f"承诺树已满，无法为 {holder_id} 分配位置")
                    raise IndexOutOfRangeError(f"承诺树已满（容量 {1 << self.tree.height}）")
                self._next_index += 1
                self.assignments[holder_id] = idx
            self.tree.insert(idx, attrs_com)
        log_msg("INFO", "ISSUER", self.issuer_id, f"为 {holder_id} 在下标 {idx} 登记承诺 {attrs_com:#x}")
        return idx, attrs_com

    def withdraw(self, holder_id: str):
        """把持有者的位置清回默认值，之后发布的根不再包含其承诺；下标不再复用。"""
        with self._lock:
            idx = self.assignments.pop(holder_id, None)
            if idx is None:
                return
            self.tree.remove(idx)
        log_msg("INFO", "ISSUER", self.issuer_id, f"移除 {holder_id} 的承诺（下标 {idx}）")

    def publish_root(self) -> int:
        with self._lock:
            root = self.tree.root()
            if root != self.published_roots[-1]:
                self.published_roots.append(root)
            self._published_tree = self.tree.copy()
        log_msg("INFO", "ISSUER", self.issuer_id, f"发布根 {root:#x}")
        return root

    def snapshot(self) -> ComTree:
        with self._lock:
            return self.tree.copy()

    def published_snapshot(self) -> ComTree:
        """最近一次发布时的树副本，其根即 published_roots[-1]。"""
        with self._lock:
            return self._published_tree.copy()

    def index_of(self, holder_id: str) -> Optional[int]:
        return self.assignments.get(holder_id)
