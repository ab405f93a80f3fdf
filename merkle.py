"""
稀疏 Merkle 树实现模块

该模块提供一个定高、按下标寻址的稀疏 Merkle 树，用于：
- 以 O(h) 的代价写入/清除叶子，并缓存根；
- 批量装载时每个脏节点只计算一次；
- 为指定叶子生成认证路径（AuthPath）。

约定：
- 深度 0 为根，深度 h 为叶子层，容量 2^h；
- 叶子层不做叶子哈希：node(h-1, j) = H(leaf[2j], leaf[2j+1])；
- 只存储非默认的叶子与内部节点，其余位置取各深度的默认值。
"""
from typing import Dict, List, Mapping, Tuple

from common.datastructures import AuthPath
from common.errors import IndexOutOfRangeError, InvalidHeightError
from crypto import to_field_element

MIN_HEIGHT = 2


def check_height(height: int):
    if isinstance(height, bool) or not isinstance(height, int) or height < MIN_HEIGHT:
        raise InvalidHeightError(f"树高必须是不小于 {MIN_HEIGHT} 的整数，得到 {height!r}")


class SparseMerkleTree:
    """一个稀疏 Merkle 树实现。"""

    def __init__(self, crh, crh_params, height: int):
        """
        初始化一棵全空的树。

        :param crh: 二合一哈希（提供 evaluate / default_output）。
        :param crh_params: 哈希参数。
        :param height: 树高 h（>= 2），容量为 2^h。
        """
        check_height(height)
        self.crh = crh
        self.crh_params = crh_params
        self.height = height
        self.capacity = 1 << height
        # defaults[d]：深度 d 上空子树的取值
        self.defaults: List[int] = [0] * (height + 1)
        self.defaults[height] = crh.default_output()
        for d in range(height - 1, -1, -1):
            self.defaults[d] = crh.evaluate(crh_params, self.defaults[d + 1], self.defaults[d + 1])
        self.leaves: Dict[int, int] = {}
        # nodes[d]：深度 d（0 <= d < h）上的非默认内部节点
        self.nodes: List[Dict[int, int]] = [dict() for _ in range(height)]

    def _check_index(self, idx: int):
        if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < self.capacity:
            raise IndexOutOfRangeError(f"下标 {idx!r} 超出范围 [0, {self.capacity})")

    def _node(self, depth: int, pos: int) -> int:
        if depth == self.height:
            return self.leaves.get(pos, self.defaults[depth])
        return self.nodes[depth].get(pos, self.defaults[depth])

    def _set_node(self, depth: int, pos: int, value: int):
        store = self.leaves if depth == self.height else self.nodes[depth]
        if value == self.defaults[depth]:
            store.pop(pos, None)
        else:
            store[pos] = value

    def _recompute(self, depth: int, pos: int):
        value = self.crh.evaluate(self.crh_params, self._node(depth + 1, 2 * pos), self._node(depth + 1, 2 * pos + 1))
        self._set_node(depth, pos, value)

    def root(self) -> int:
        return self._node(0, 0)

    def get(self, idx: int) -> int:
        self._check_index(idx)
        return self._node(self.height, idx)

    def __len__(self) -> int:
        return len(self.leaves)

    def update(self, idx: int, value: int):
        """写入叶子并沿路径重算 h 个祖先。值不是规范域元素时抛出 FieldConversionError，树保持不变。"""
        self._check_index(idx)
        value = to_field_element(value)
        self._set_node(self.height, idx, value)
        pos = idx
        for depth in range(self.height - 1, -1, -1):
            pos >>= 1
            self._recompute(depth, pos)

    def bulk_update(self, items: Mapping[int, int]):
        """批量写入：先校验全部下标与值，再逐层只重算一次受影响的节点。"""
        checked = {}
        for idx, value in items.items():
            self._check_index(idx)
            checked[idx] = to_field_element(value)
        for idx, value in checked.items():
            self._set_node(self.height, idx, value)
        dirty = set(items)
        for depth in range(self.height - 1, -1, -1):
            dirty = {pos >> 1 for pos in dirty}
            for pos in dirty:
                self._recompute(depth, pos)

    def auth_path(self, idx: int) -> AuthPath:
        """
        生成认证路径：叶子对，以及自底向上各层包含当前节点的兄弟对（不含根本身）。
        """
        self._check_index(idx)
        base = idx & ~1
        leaf_pair = (self._node(self.height, base), self._node(self.height, base + 1))
        inner_pairs: List[Tuple[int, int]] = []
        pos = idx >> 1
        for depth in range(self.height - 1, 0, -1):
            base = pos & ~1
            inner_pairs.append((self._node(depth, base), self._node(depth, base + 1)))
            pos >>= 1
        return AuthPath(leaf_pair=leaf_pair, inner_pairs=inner_pairs)

    def copy(self) -> 'SparseMerkleTree':
        clone = SparseMerkleTree.__new__(SparseMerkleTree)
        clone.crh = self.crh
        clone.crh_params = self.crh_params
        clone.height = self.height
        clone.capacity = self.capacity
        clone.defaults = self.defaults
        clone.leaves = dict(self.leaves)
        clone.nodes = [dict(level) for level in self.nodes]
        return clone
