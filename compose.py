import argparse
import logging
import os.path as osp
from typing import Any

from rasterstack import FileType, LayeredImage, read_image_file, save_image
from rasterstack.utils.io import read_yaml, save_json
from rasterstack.utils.log import setup_logging

logger = logging.getLogger(__name__)

FORMAT_CHOICES = {"ppm": FileType.PPM, "pgm": FileType.PGM, "pbm": FileType.PBM}


def load_config(args: argparse.Namespace) -> dict[str, Any]:
    """Merge a YAML config (if given) with command line overrides."""
    cfg: dict[str, Any] = read_yaml(args.config) if args.config else {}
    if args.input:
        cfg["layers"] = list(args.input)
    if args.output:
        cfg["output"] = args.output
    if args.format:
        cfg["format"] = args.format
    if not cfg.get("layers"):
        raise ValueError("No input layers given (use --input or a 'layers' list in --config)")
    if not cfg.get("output"):
        raise ValueError("No output path given (use --output or 'output' in --config)")
    return cfg


def resolve_file_type(cfg: dict[str, Any]) -> FileType:
    if cfg.get("format"):
        name = str(cfg["format"]).lower()
        if name not in FORMAT_CHOICES:
            raise ValueError(f"Unknown output format: {name}. Available: {list(FORMAT_CHOICES)}")
        return FORMAT_CHOICES[name]
    file_type = FileType.from_suffix(cfg["output"])
    if file_type is FileType.UNKNOWN:
        raise ValueError(f"Cannot infer output format from {cfg['output']}; pass --format")
    return file_type


def compose(cfg: dict[str, Any], progress: bool = False) -> LayeredImage:
    """Stack the configured Netpbm files bottom first and save the flattened result."""
    paths = cfg["layers"]
    file_type = resolve_file_type(cfg)
    image = None
    try:
        for i, path in enumerate(paths):
            logger.info(f"Loading layer {path} ({i + 1}/{len(paths)})")
            layer, source_type = read_image_file(path)
            with layer:
                if image is None:
                    width = int(cfg.get("width", layer.width))
                    height = int(cfg.get("height", layer.height))
                    image = LayeredImage(width, height)
                logger.debug(f"{osp.basename(path)} is {source_type.name} {layer.width}x{layer.height}")
                image.add_existing_layer(layer)
        save_image(image, cfg["output"], file_type, progress=progress)
    except Exception:
        if image is not None:
            image.destroy()
        raise
    logger.info(f"Saved {cfg['output']} ({file_type.name})")
    return image


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Flatten a stack of Netpbm images into one file")
    parser.add_argument("--input", type=str, nargs="+", default=None, help="Layer files, bottom first")
    parser.add_argument("--config", type=str, default=None, help="YAML file with layers/output/format keys")
    parser.add_argument("--output", type=str, default=None, help="Output file path")
    parser.add_argument("--format", type=str, choices=sorted(FORMAT_CHOICES), default=None, help="Output format")
    parser.add_argument("--summary-json", type=str, default=None, help="Write the layer stack summary as JSON")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar while writing")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level",
    )
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, use_tqdm_handler=args.progress)
    cfg = load_config(args)
    image = compose(cfg, progress=args.progress)
    with image:
        image.log_info()
        if args.summary_json:
            save_json(
                {
                    "width": image.width,
                    "height": image.height,
                    "layers": [{"width": layer.width, "height": layer.height} for layer in image],
                    "output": cfg["output"],
                },
                args.summary_json,
                indent=2,
            )


if __name__ == "__main__":
    main()
