from typing import Dict, List

from circuits.r1cs import ConstraintSystem, LinComb


class AttrsVar:
    """属性记录在电路中的见证：按 FIELD_NAMES 顺序的字段变量与承诺 nonce。"""

    def __init__(self, names, fields: List[LinComb], nonce: LinComb, scheme):
        self.names = tuple(names)
        self.fields = fields
        self.nonce = nonce
        self.scheme = scheme
        self._by_name: Dict[str, LinComb] = dict(zip(self.names, fields))

    @classmethod
    def new_witness(cls, cs: ConstraintSystem, attrs) -> 'AttrsVar':
        with cs.namespace("attrs"):
            fields = [cs.alloc_witness(v, name) for name, v in zip(attrs.FIELD_NAMES, attrs.field_values())]
            nonce = cs.alloc_witness(attrs.nonce, "nonce")
        return cls(attrs.FIELD_NAMES, fields, nonce, attrs.commitment_scheme())

    def __getitem__(self, name: str) -> LinComb:
        return self._by_name[name]

    def commit(self, cs: ConstraintSystem) -> LinComb:
        with cs.namespace("attrs"):
            return self.scheme.commit_gadget(cs, self.fields, self.nonce)
