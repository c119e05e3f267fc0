"""NIfTI I/O for PETRA inputs, pseudo-CT outputs and masks."""

from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import nibabel as nib


def split_nifti_name(path: Union[str, Path]) -> Tuple[str, str]:
    """Split a NIfTI filename into stem and extension ('.nii' or '.nii.gz').

    Args:
        path: NIfTI path

    Returns:
        stem: Filename without extension
        ext: Extension, including a trailing '.gz' if present
    """
    name = Path(path).name
    for ext in ('.nii.gz', '.nii'):
        if name.endswith(ext):
            return name[:-len(ext)], ext
    suffix = Path(name).suffix
    return name[:-len(suffix)] if suffix else name, suffix


def derive_output_path(input_path: Union[str, Path], suffix: str) -> str:
    """Insert ``suffix`` before the NIfTI extension, e.g. head.nii.gz -> head-pct.nii.gz."""
    input_path = Path(input_path)
    stem, ext = split_nifti_name(input_path)
    return str(input_path.parent / f"{stem}{suffix}{ext}")


def read_nifti(
    nifti_path: str,
    return_spacing: bool = True,
    return_affine: bool = False
) -> Tuple[np.ndarray, ...]:
    """Read NIfTI file and extract volume with metadata.

    Args:
        nifti_path: Path to .nii or .nii.gz file
        return_spacing: If True, include spacing in output
        return_affine: If True, include affine matrix in output

    Returns:
        volume: 3D float32 numpy array (scaling applied)
        spacing: (sx, sy, sz) in mm if return_spacing=True
        affine: 4x4 affine matrix if return_affine=True
    """
    img = nib.load(nifti_path)
    volume = np.asarray(img.get_fdata(dtype=np.float32))

    result = [volume]

    if return_spacing:
        spacing = tuple(float(z) for z in img.header.get_zooms()[:3])
        result.append(spacing)

    if return_affine:
        result.append(img.affine)

    return tuple(result) if len(result) > 1 else result[0]


def load_nifti_image(nifti_path: str) -> nib.Nifti1Image:
    """Load a NIfTI image, keeping its header for writing derived outputs."""
    return nib.load(nifti_path)


def _affine_from_spacing(spacing: Tuple[float, float, float]) -> np.ndarray:
    affine = np.eye(4)
    affine[0, 0] = spacing[0]
    affine[1, 1] = spacing[1]
    affine[2, 2] = spacing[2]
    return affine


def write_nifti(
    volume: np.ndarray,
    output_path: str,
    spacing: Tuple[float, float, float],
    affine: Optional[np.ndarray] = None,
    header: Optional[nib.Nifti1Header] = None
) -> None:
    """Write a float32 volume to NIfTI with correct spacing and affine.

    Args:
        volume: 3D numpy array to save
        output_path: Output path for .nii or .nii.gz
        spacing: (sx, sy, sz) voxel spacing in mm
        affine: Optional 4x4 affine matrix; if None, created from spacing
        header: Optional header template
    """
    if affine is None:
        affine = _affine_from_spacing(spacing)

    img = nib.Nifti1Image(volume.astype(np.float32), affine, header=header)
    img.header.set_zooms(tuple(spacing))
    nib.save(img, output_path)


def _write_typed(
    data: np.ndarray,
    output_path: str,
    dtype: type,
    affine: Optional[np.ndarray],
    header: Optional[nib.Nifti1Header],
    description: str
) -> None:
    if affine is None:
        affine = header.get_best_affine() if header is not None else np.eye(4)

    img = nib.Nifti1Image(data.astype(dtype), affine, header=header)
    img.set_data_dtype(dtype)
    img.header.set_slope_inter(1, 0)
    img.header['descrip'] = description.encode()[:80]
    img.header['cal_min'] = data.min() if data.size else 0
    img.header['cal_max'] = data.max() if data.size else 0
    nib.save(img, output_path)


def write_pseudo_ct(
    pseudo_ct: np.ndarray,
    output_path: str,
    affine: Optional[np.ndarray] = None,
    header: Optional[nib.Nifti1Header] = None
) -> None:
    """Write a pseudo-CT volume as int16 Hounsfield Units.

    Scaling is fixed to slope 1 / intercept 0 so stored values are HU.

    Args:
        pseudo_ct: Integer HU volume
        output_path: Output .nii or .nii.gz path
        affine: Affine of the source image
        header: Header of the source image, used as template
    """
    _write_typed(pseudo_ct, output_path, np.int16, affine, header, 'pseudoCT')


def write_mask(
    mask: np.ndarray,
    output_path: str,
    affine: Optional[np.ndarray] = None,
    header: Optional[nib.Nifti1Header] = None,
    description: str = 'mask'
) -> None:
    """Write a binary mask as uint8 (0/1)."""
    _write_typed(mask.astype(np.uint8), output_path, np.uint8, affine, header, description)
