# generate_images.py
"""Generate the webp variant matrix for a local directory of images.

Usage:
    python generate_images.py <input_dir> <output_dir> [--zip out.zip]
"""

import argparse
import logging
import os
import sys

from imagepack.archive import pack
from imagepack.errors import NoImagesFoundError
from imagepack.variants import VariantGenerator

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger("generate_images")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("input_dir")
    parser.add_argument("output_dir")
    parser.add_argument("--zip", dest="zip_path", help="also pack the output directory into this archive")
    parser.add_argument("--workers", type=int, default=1)
    args = parser.parse_args(argv)

    if not os.path.isdir(args.input_dir):
        logger.error("Input directory %s does not exist", args.input_dir)
        return 2
    os.makedirs(args.output_dir, exist_ok=True)

    try:
        produced = VariantGenerator(workers=args.workers).generate(args.input_dir, args.output_dir)
    except NoImagesFoundError as e:
        logger.error("%s", e)
        return 1
    logger.info("%d variants written to %s", produced, args.output_dir)

    if args.zip_path:
        with open(args.zip_path, "wb") as f:
            f.write(pack(args.output_dir))
        logger.info("Archive written to %s", args.zip_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
