"""I/O utilities for NIfTI handling and external bias correction."""

from .nifti_io import (
    read_nifti,
    write_nifti,
    write_pseudo_ct,
    write_mask,
    derive_output_path
)
from .debias import debias

__all__ = [
    'read_nifti',
    'write_nifti',
    'write_pseudo_ct',
    'write_mask',
    'derive_output_path',
    'debias'
]
