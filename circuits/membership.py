"""
树成员关系电路

公开输入（按顺序）：attrs_com, root。
见证：认证路径（叶子对与自底向上的各层兄弟对）。位置本身不作为见证，只检查逐层的“属于该对”关系。
"""
from circuits.gadgets import enforce_one_of
from circuits.r1cs import ConstraintSystem
from common.datastructures import AuthPath


class TreeMembershipCircuit:

    def __init__(self, crh, crh_params, height: int, attrs_com: int, root: int, path: AuthPath,
                 is_setup: bool = False):
        self.crh = crh
        self.crh_params = crh_params
        self.height = height
        self.attrs_com = attrs_com
        self.root = root
        self.path = path
        self.is_setup = is_setup

    @classmethod
    def for_setup(cls, crh, crh_params, height: int) -> 'TreeMembershipCircuit':
        """占位电路：默认叶子对与 height-1 个默认兄弟对，仅用于固定拓扑。"""
        default_leaf = crh.default_output()
        default_inner = crh.evaluate(crh_params, default_leaf, default_leaf)
        path = AuthPath.default(height, default_leaf, default_inner)
        return cls(crh, crh_params, height, default_leaf, 0, path, is_setup=True)

    @classmethod
    def for_proving(cls, crh, crh_params, height: int, attrs_com: int, root: int,
                    path: AuthPath) -> 'TreeMembershipCircuit':
        return cls(crh, crh_params, height, attrs_com, root, path)

    def generate_constraints(self, cs: ConstraintSystem):
        attrs_com = cs.alloc_input(self.attrs_com, "attrs_com")
        root = cs.alloc_input(self.root, "root")

        with cs.namespace("leaf"):
            left = cs.alloc_witness(self.path.leaf_pair[0], "left")
            right = cs.alloc_witness(self.path.leaf_pair[1], "right")
            enforce_one_of(cs, attrs_com, (left, right), "contains_attrs_com")
            cur = self.crh.evaluate_gadget(cs, self.crh_params, left, right)

        for depth, (l, r) in enumerate(self.path.inner_pairs):
            with cs.namespace(f"level{depth}"):
                left = cs.alloc_witness(l, "left")
                right = cs.alloc_witness(r, "right")
                enforce_one_of(cs, cur, (left, right), "contains_child")
                cur = self.crh.evaluate_gadget(cs, self.crh_params, left, right)

        cs.enforce_equal(cur, root, "root")
