"""Pydantic schema for the pencil renderer configuration.

Schema ``pencil_renderer.v1`` groups every tunable of the pipeline:
    - structure: DoG edge detector and structure-tensor flow field
    - quantization: hatch lattice and edge snap zone
    - noise: dense/sparse noise density and normalization gains
    - convolution: LIC discretization, Gaussian widths, bilateral pre-filter
    - lod: default number of levels
    - randomness: generator seed
    - output: image/metadata writing

All fields have defaults, so ``PencilRendererV1()`` reproduces the reference
parameter set. YAML files only need to list overrides.

Usage:
    from pencil_lic.utils import validators
    cfg = validators.load_renderer_config("configs/pencil_renderer.v1.yaml")
    cfg.convolution.angular_steps  # 24
"""

import math
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# PENCIL RENDERER SCHEMA V1
# ============================================================================

class StructureConfig(BaseModel):
    """Edge detector and flow field estimator."""
    dog_sigma: float = Field(1.0, gt=0.0, le=10.0, description="Inner Gaussian sigma (px)")
    dog_k: float = Field(1.6, gt=1.0, le=5.0, description="Outer/inner sigma ratio")
    dog_tau: float = Field(0.99, gt=0.0, le=1.0, description="Outer Gaussian weight")
    dog_phi: float = Field(40.0, gt=0.0, le=1000.0, description="tanh sharpness of edge ramp")
    flow_sigma: float = Field(2.0, gt=0.0, le=20.0, description="Structure tensor smoothing sigma (px)")


class QuantizationConfig(BaseModel):
    """Hatch-angle lattice applied away from edges."""
    threshold_divisor: float = Field(50.0, gt=0.0, description="Snap zone = max(W, H) / divisor")
    edge_cutoff: float = Field(0.25, ge=0.0, lt=1.0, description="Edge pixels have response > cutoff")
    hatch_period: float = Field(math.pi, gt=0.0, description="Lattice period (rad)")
    hatch_offset: float = Field(-math.pi / 4.0, description="Lattice offset (rad)")


class NoiseConfig(BaseModel):
    """Noise density and brightness normalization."""
    dense_candidate_frac: float = Field(0.3, gt=0.0, le=1.0, description="Dot draws per pixel")
    dense_target_frac: float = Field(0.2, gt=0.0, le=1.0, description="Nominal live dots per pixel")
    dense_ratio_gain: float = Field(1.5, gt=0.0, description="Dense ratio = gain * target / area")
    sparse_ratio_gain: float = Field(1.2, gt=0.0, description="Sparse ratio = gain * points / area")


class ConvolutionConfig(BaseModel):
    """Line integral convolution parameters."""
    tau: float = Field(math.pi / 6.0, gt=0.0, le=math.pi, description="Half sweep of angular samples (rad)")
    angular_steps: int = Field(24, ge=1, le=256, description="T: angular samples per side")
    spatial_steps: int = Field(24, ge=1, le=256, description="S: spatial samples per side")
    length: float = Field(7.0, gt=0.0, le=100.0, description="Half stroke length (px)")
    sigma_angle: float = Field(4.0, gt=0.0, description="Directional Gaussian sigma")
    sigma_range: float = Field(2.0, gt=0.0, description="Photometric Gaussian sigma")
    jitter_steps: int = Field(2, ge=0, le=16, description="n: jitter drawn from [-n, n]")
    bilateral_d: int = Field(19, ge=1, le=51, description="Bilateral pre-filter diameter")
    bilateral_sigma_color: float = Field(0.5, gt=0.0, description="Bilateral range sigma")
    bilateral_sigma_space: float = Field(15.0, gt=0.0, description="Bilateral spatial sigma")
    eps: float = Field(1e-12, gt=0.0, le=1e-3, description="Floor for ratio * weight")
    band_rows: int = Field(16, ge=1, le=4096, description="Rows per parallel work item")
    workers: Optional[int] = Field(None, ge=1, le=256, description="Thread count, None = CPU count")


class LODConfig(BaseModel):
    """Level-of-detail compositing."""
    levels: int = Field(1, ge=1, le=8, description="Number of halved resolutions to average")


class RandomnessConfig(BaseModel):
    """Generator seeding."""
    seed: Optional[int] = Field(None, ge=0, description="Seed for numpy Generator, None = entropy")


class OutputConfig(BaseModel):
    """Output writing."""
    write_metadata: bool = Field(True, description="Write YAML sidecar next to the image")
    png_compress_level: int = Field(6, ge=0, le=9, description="PNG zlib level")


class PencilRendererV1(BaseModel):
    """Pencil renderer schema v1.

    The YAML key is ``schema``; the attribute is ``schema_id`` so it does not
    shadow ``BaseModel.schema``.
    """
    model_config = ConfigDict(populate_by_name=True)

    schema_id: str = Field(default="pencil_renderer.v1", alias="schema")
    structure: StructureConfig = Field(default_factory=StructureConfig)
    quantization: QuantizationConfig = Field(default_factory=QuantizationConfig)
    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    convolution: ConvolutionConfig = Field(default_factory=ConvolutionConfig)
    lod: LODConfig = Field(default_factory=LODConfig)
    randomness: RandomnessConfig = Field(default_factory=RandomnessConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator('schema_id')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "pencil_renderer.v1":
            raise ValueError(f"schema must be 'pencil_renderer.v1', got {v}")
        return v


def load_renderer_config(path: Union[str, Path]) -> PencilRendererV1:
    """Load and validate renderer config from YAML.

    Parameters
    ----------
    path : str or Path
        Path to pencil_renderer.v1.yaml

    Returns
    -------
    PencilRendererV1
        Validated config model

    Raises
    ------
    FileNotFoundError
        If file does not exist
    ValueError
        If validation fails (with the offending fields in the message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pencil renderer config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return PencilRendererV1(**data)
    except Exception as e:
        raise ValueError(f"Pencil renderer config validation failed at {path}: {e}") from e


def flatten_config(cfg: Union[Dict, BaseModel], prefix: str = "") -> Dict[str, Any]:
    """Flatten a nested config into dotted keys (for metadata sidecars).

    Examples
    --------
    >>> flatten_config(PencilRendererV1())["convolution.angular_steps"]
    24
    """
    if isinstance(cfg, BaseModel):
        cfg = cfg.model_dump(by_alias=True)

    flat: Dict[str, Any] = {}
    for key, value in cfg.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_config(value, full_key))
        else:
            flat[full_key] = value
    return flat
