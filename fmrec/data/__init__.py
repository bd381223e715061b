from fmrec.data.encoder import SparseFeatureEncoder, SparseVector
from fmrec.data.schema import FieldMap, FieldSchema
from fmrec.data.synthetic import make_linear_tensor, make_synthetic_tensor
from fmrec.data.tensor import InteractionTensor

__all__ = [
    "FieldMap",
    "FieldSchema",
    "InteractionTensor",
    "SparseFeatureEncoder",
    "SparseVector",
    "make_linear_tensor",
    "make_synthetic_tensor",
]
