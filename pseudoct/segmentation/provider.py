"""Tissue segmentation collaborators.

The statistical segmentation itself runs outside this package. A
``SegmentationProvider`` hands the converter one probability map per
tissue class for the image being converted.
"""

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from ..errors import ConfigurationError, SegmentationError
from ..io.nifti_io import read_nifti, split_nifti_name


@dataclass
class TissueProbabilities:
    """Per-class tissue probability maps, values in [0, 1].

    Attributes:
        bone: Bone probability (skull mask source)
        soft_tissue: Soft-tissue probability (head mask source)
        background: Air/background probability, if available
    """
    bone: np.ndarray
    soft_tissue: np.ndarray
    background: Optional[np.ndarray] = None


class SegmentationMethod(Enum):
    """Available segmentation sources."""
    EXTERNAL = 'external'
    SPM12 = 'spm12'


class SegmentationProvider(ABC):
    """Abstract source of tissue probability maps."""

    method: SegmentationMethod

    @abstractmethod
    def segment(self, volume: np.ndarray) -> TissueProbabilities:
        """Return tissue probabilities co-registered with ``volume``."""
        pass


class ArrayProvider(SegmentationProvider):
    """Serves probability maps already held in memory."""

    method = SegmentationMethod.EXTERNAL

    def __init__(self, probabilities: TissueProbabilities):
        self.probabilities = probabilities

    def segment(self, volume: np.ndarray) -> TissueProbabilities:
        return self.probabilities


# SPM12 native-space tissue classes written as c<index><input name>
SPM12_CLASSES = {
    'bone': 4,
    'soft_tissue': 5,
    'background': 6,
}

# Names the class images and seg8 file take when moved to an output directory
SPM12_OUTPUT_STEMS = {
    'bone': 'spm_bone_seg',
    'soft_tissue': 'spm_soft_tissue_seg',
    'background': 'spm_background_seg',
}
SPM12_SEG8_OUTPUT = 'spm_seg8.mat'


class SPM12FileProvider(SegmentationProvider):
    """Reads the tissue class images SPM12 writes next to its input.

    SPM12 must already have been run on ``input_path`` with native-space
    output enabled for the bone (c4), soft tissue (c5) and air (c6)
    classes. With ``output_dir`` set, the class images and the
    ``_seg8.mat`` file are moved there and renamed to
    ``spm_bone_seg``/``spm_soft_tissue_seg``/``spm_background_seg`` and
    ``spm_seg8.mat`` before loading. Images already in the output
    directory are reused.
    """

    method = SegmentationMethod.SPM12

    def __init__(
        self,
        input_path: Union[str, Path],
        delete_segmentation: bool = False,
        output_dir: Optional[Union[str, Path]] = None
    ):
        """Initialize provider.

        Args:
            input_path: Image that was segmented by SPM12
            delete_segmentation: Remove the SPM12 class images and
                ``_seg8.mat`` after loading
            output_dir: Directory the renamed segmentation files live in
                (default: read the c4/c5/c6 images beside the input)
        """
        self.input_path = Path(input_path)
        self.delete_segmentation = delete_segmentation
        self.output_dir = Path(output_dir) if output_dir is not None else None

    def class_path(self, index: int) -> Path:
        return self.input_path.parent / f"c{index}{self.input_path.name}"

    def seg8_path(self) -> Path:
        stem, _ = split_nifti_name(self.input_path)
        return self.input_path.parent / f"{stem}_seg8.mat"

    def output_path(self, name: str) -> Path:
        """Renamed location of a class image inside ``output_dir``."""
        _, ext = split_nifti_name(self.input_path)
        return self.output_dir / f"{SPM12_OUTPUT_STEMS[name]}{ext}"

    def collect_outputs(self) -> List[Path]:
        """Move the c4/c5/c6 images and ``_seg8.mat`` into ``output_dir``.

        Files that are missing beside the input are skipped.

        Returns:
            Paths of the moved files in ``output_dir``
        """
        if self.output_dir is None:
            raise ConfigurationError(
                "output_dir is not set", stage='segmentation',
                context={'input': str(self.input_path)}
            )
        self.output_dir.mkdir(parents=True, exist_ok=True)

        moves = [(self.class_path(index), self.output_path(name))
                 for name, index in SPM12_CLASSES.items()]
        moves.append((self.seg8_path(), self.output_dir / SPM12_SEG8_OUTPUT))

        moved = []
        for source, target in moves:
            if source.exists():
                shutil.move(str(source), str(target))
                moved.append(target)
        return moved

    def source_path(self, name: str) -> Path:
        if self.output_dir is None:
            return self.class_path(SPM12_CLASSES[name])
        return self.output_path(name)

    def _load(self, name: str, required: bool = True) -> Optional[np.ndarray]:
        path = self.source_path(name)
        if not path.exists():
            if not required:
                return None
            raise SegmentationError(
                f"SPM12 {name} image not found; run SPM12 segmentation first",
                stage='segmentation', context={'path': str(path)}
            )
        return read_nifti(str(path), return_spacing=False)

    def segment(self, volume: np.ndarray) -> TissueProbabilities:
        if self.output_dir is not None:
            self.collect_outputs()
        probabilities = TissueProbabilities(
            bone=self._load('bone'),
            soft_tissue=self._load('soft_tissue'),
            background=self._load('background', required=False)
        )
        if self.delete_segmentation:
            self.cleanup()
        return probabilities

    def cleanup(self) -> None:
        """Delete SPM12 class images c1..c6 and the ``_seg8.mat`` file.

        In output-directory mode the renamed files are deleted as well.
        """
        paths = [self.class_path(i) for i in range(1, 7)] + [self.seg8_path()]
        if self.output_dir is not None:
            paths += [self.output_path(name) for name in SPM12_OUTPUT_STEMS]
            paths.append(self.output_dir / SPM12_SEG8_OUTPUT)
        for path in paths:
            if path.exists():
                path.unlink()


def create_provider(
    method: Union[str, SegmentationMethod],
    **kwargs
) -> SegmentationProvider:
    """Create a segmentation provider for the given method.

    Args:
        method: SegmentationMethod or its string value
        **kwargs: ``probabilities`` for EXTERNAL; ``input_path`` and
            optionally ``delete_segmentation`` and ``output_dir`` for SPM12

    Returns:
        SegmentationProvider
    """
    try:
        method = SegmentationMethod(method)
    except ValueError:
        raise ConfigurationError(
            f"Unknown segmentation method: {method}",
            stage='segmentation',
            context={'available': [m.value for m in SegmentationMethod]}
        ) from None

    required = 'probabilities' if method is SegmentationMethod.EXTERNAL else 'input_path'
    if kwargs.get(required) is None:
        raise ConfigurationError(
            f"'{required}' is required for segmentation method '{method.value}'",
            stage='segmentation'
        )

    if method is SegmentationMethod.EXTERNAL:
        return ArrayProvider(kwargs['probabilities'])
    return SPM12FileProvider(**kwargs)
