"""Scene preprocessing for mangrovemapper."""

from .landsat import (
    INDEX_BANDS,
    add_indices,
    apply_scale_factors,
    cloud_mask,
    mask_clouds,
    prepare_collection,
)

__all__ = [
    "INDEX_BANDS",
    "add_indices",
    "apply_scale_factors",
    "cloud_mask",
    "mask_clouds",
    "prepare_collection",
]
