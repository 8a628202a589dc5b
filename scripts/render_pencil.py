#!/usr/bin/env python3
"""Render a pencil drawing from an image.

Usage:
    # Dense noise, three LOD levels
    python scripts/render_pencil.py --image photo.jpg --output outputs/photo_pencil.png --levels 3

    # Sparse strokes seeded from anchor points, fixed seed
    python scripts/render_pencil.py --image photo.jpg --points anchors.yaml \
        --output outputs/photo_pencil.png --seed 7

    # Custom config
    python scripts/render_pencil.py --image photo.jpg --config configs/pencil_renderer.v1.yaml \
        --output outputs/photo_pencil.png

Outputs:
    - <output>: 8-bit PNG/JPEG tone image (same channel count as input)
    - <output stem>.yaml: metadata (size, levels, seed, timing, tone stats, config)

Anchor point YAML:
    points:
      - [120.0, 45.5]
      - [121.0, 46.0]
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from pencil_lic import render_lod
from pencil_lic.utils import compute, fs, logging_config, metrics, profiler, validators

logger = logging.getLogger("render_pencil")


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a pencil drawing with flow-aligned line integral convolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--image', type=str, required=True, help='Input image path')
    parser.add_argument('--output', type=str, required=True, help='Output image path')
    parser.add_argument(
        '--points',
        type=str,
        default=None,
        help='YAML file with anchor points (sparse mode); dense noise if omitted'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Renderer config YAML (pencil_renderer.v1); built-in defaults if omitted'
    )
    parser.add_argument('--levels', type=int, default=None, help='LOD levels, default from config')
    parser.add_argument('--seed', type=int, default=None, help='Random seed, default from config')
    parser.add_argument('--workers', type=int, default=None, help='Convolution threads')
    parser.add_argument(
        '--log_level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level, default: INFO'
    )
    parser.add_argument('--log_file', type=str, default=None, help='Optional log file')
    parser.add_argument('--log_json', action='store_true', help='JSON log lines')
    return parser.parse_args(argv)


def load_config(args) -> validators.PencilRendererV1:
    """Load config and apply CLI overrides."""
    cfg = (
        validators.load_renderer_config(args.config)
        if args.config
        else validators.PencilRendererV1()
    )
    if args.levels is not None:
        cfg.lod.levels = args.levels
    if args.seed is not None:
        cfg.randomness.seed = args.seed
    if args.workers is not None:
        cfg.convolution.workers = args.workers
    # Re-validate overrides against field bounds
    return validators.PencilRendererV1.model_validate(cfg.model_dump(by_alias=True))


def main(argv=None) -> int:
    args = parse_args(argv)
    logging_config.setup_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        json=args.log_json,
        quiet_libs=['PIL'],
        context={'app': 'render_pencil'}
    )

    try:
        cfg = load_config(args)
        image = fs.load_image(args.image)
        points = fs.load_points(args.points) if args.points else None
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 2

    if compute.channels_of(image) == 4:
        logger.warning("Dropping alpha channel; rendering BGR only")
        image = image[:, :, :3]

    height, width = image.shape[:2]
    logger.info(
        f"Rendering {args.image} ({width}x{height}, {compute.channels_of(image)} ch), "
        f"levels={cfg.lod.levels}, points={len(points) if points else 0}"
    )

    def report(done: int, total: int) -> None:
        if done == total:
            logger.info(f"Convolution pass finished ({total} rows)")

    with profiler.timer("render") as timing:
        tone = render_lod(
            image,
            points,
            levels=cfg.lod.levels,
            cfg=cfg,
            rng=np.random.default_rng(cfg.randomness.seed),
            progress=report
        )
    elapsed = timing['elapsed_s']

    output = Path(args.output)
    fs.atomic_save_image(
        compute.to_uint8(tone),
        output,
        pil_kwargs={'compress_level': cfg.output.png_compress_level}
        if output.suffix.lower() == '.png' else None
    )
    logger.info(f"Saved {output} in {elapsed:.1f} s")

    if cfg.output.write_metadata:
        fs.atomic_yaml_dump(
            {
                'input': str(args.image),
                'output': str(output),
                'size_px': [int(width), int(height)],
                'levels': cfg.lod.levels,
                'seed': cfg.randomness.seed,
                'n_points': len(points) if points else 0,
                'elapsed_s': round(elapsed, 3),
                'tone': metrics.tone_stats(tone),
                'config': validators.flatten_config(cfg),
            },
            output.with_suffix('.yaml')
        )
    return 0


if __name__ == '__main__':
    sys.exit(main())
