#!/usr/bin/env python3
"""
MediVision Engine
Upload a prescription once, then scan a photo of your medicines to see which
of the ones due now are visible and where.

  upload   → Gemini extraction → prescription store
  identify → Gemini extraction → printed, not saved
  scan     → schedule filter → OCR / vision locator → JSON report (+ overlay)
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import cv2

from medivision.config import EngineConfig
from medivision.engine import DetectionCoordinator
from medivision.errors import MediVisionError
from medivision.geometry import FitPolicy, Size
from medivision.llm.gemini import GeminiVisionProvider
from medivision.llm.prescription import ParsedPrescription, PrescriptionParser
from medivision.locators import build_locator
from medivision.schema import DetectionReport, PrescriptionRecord
from medivision.store import PrescriptionStore
from medivision.vision.imaging import load_image
from medivision.vision.overlay import render_overlay

logger = logging.getLogger("medivision")


def _is_pdf(path: str) -> bool:
    return path.lower().endswith(".pdf")


def identify_medicine(config: EngineConfig, path: str) -> ParsedPrescription:
    """Parse a medicine or prescription image or PDF without saving it."""
    parser = PrescriptionParser(GeminiVisionProvider.from_config(config))
    file_name = Path(path).name

    if _is_pdf(file_name):
        return parser.parse(pdf_bytes=Path(path).read_bytes(), file_name=file_name)
    return parser.parse(image=load_image(path), file_name=file_name)


def upload_prescription(config: EngineConfig, path: str, store: Optional[PrescriptionStore] = None) -> PrescriptionRecord:
    """Parse a prescription image or PDF and persist the medicine list."""
    store = store or PrescriptionStore(config.store_path)
    parsed = identify_medicine(config, path)

    file_name = Path(path).name
    record = store.save(file_name, parsed.extracted_text, parsed.medicines, is_pdf=_is_pdf(file_name))
    logger.info("Total saved prescriptions: %d", len(store.get_all_records()))
    return record


def scan_image(
    config: EngineConfig,
    image_path: str,
    hour: Optional[int] = None,
    overlay_path: Optional[str] = None,
    container: Optional[Size] = None,
    fit: FitPolicy = FitPolicy.CONTAIN,
) -> DetectionReport:
    """Run the detection pipeline on a single image."""
    logger.info("Processing: %s", image_path)

    image = load_image(image_path)
    coordinator = DetectionCoordinator(
        store=PrescriptionStore(config.store_path),
        locator=build_locator(config),
    )
    report = asyncio.run(coordinator.detect(image, hour=hour))

    if overlay_path:
        h, w = image.shape[:2]
        canvas = render_overlay(image, report, container or Size(w, h), fit)
        cv2.imwrite(overlay_path, canvas)
        logger.info("Overlay written to %s", overlay_path)

    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MediVision: find the medicines due now in a photo",
        epilog="Example: python main.py scan images/pills.jpeg --overlay out.jpg"
    )
    parser.add_argument("--env", default=None, help="Path to a .env file")
    parser.add_argument("--store", default=None, help="Prescription store JSON path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Parse and save a prescription image or PDF")
    upload.add_argument("file", help="Prescription image or PDF")

    identify = subparsers.add_parser("identify", help="Parse a medicine image or PDF without saving it")
    identify.add_argument("file", help="Medicine or prescription image or PDF")

    subparsers.add_parser("list", help="List saved prescriptions")

    delete = subparsers.add_parser("delete", help="Delete a saved prescription")
    delete.add_argument("id", help="Prescription id")

    subparsers.add_parser("clear", help="Delete all saved prescriptions")

    scan = subparsers.add_parser("scan", help="Find due medicines in a photo")
    scan.add_argument("image", help="Photo of medicines")
    scan.add_argument("--hour", type=int, default=None, help="Hour of day 0-23 (default: now)")
    scan.add_argument("--strategy", choices=["ocr", "vision"], default=None)
    scan.add_argument("--provider", choices=["gemini", "moondream"], default=None)
    scan.add_argument("--no-verify", action="store_true", help="Skip the yes/no verification question")
    scan.add_argument("--overlay", default=None, help="Write an annotated image here")
    scan.add_argument("--container", type=Size.parse, default=None, help="Screen size WxH for the overlay")
    scan.add_argument("--fit", choices=[p.value for p in FitPolicy], default=FitPolicy.CONTAIN.value)
    scan.add_argument("--no-json", action="store_true", help="Print the summary instead of JSON")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    try:
        config = EngineConfig.from_env(
            args.env,
            store_path=args.store,
            strategy=getattr(args, "strategy", None),
            vision_provider=getattr(args, "provider", None),
            verify=False if getattr(args, "no_verify", False) else None,
        )
        store = PrescriptionStore(config.store_path)

        if args.command == "upload":
            record = upload_prescription(config, args.file, store)
            print(record.model_dump_json(indent=2))

        elif args.command == "identify":
            parsed = identify_medicine(config, args.file)
            print(json.dumps({
                "file_name": Path(args.file).name,
                "extracted_text": parsed.extracted_text,
                "medicines": [m.model_dump(mode="json") for m in parsed.medicines],
            }, indent=2))

        elif args.command == "list":
            for record in store.get_all_records():
                names = ", ".join(m.name for m in record.medicines) or "-"
                print(f"{record.id}  {record.file_name}  [{names}]")

        elif args.command == "delete":
            if not store.delete(args.id):
                print(f"No prescription with id {args.id}", file=sys.stderr)
                return 1

        elif args.command == "clear":
            store.clear()

        elif args.command == "scan":
            report = scan_image(
                config,
                args.image,
                hour=args.hour,
                overlay_path=args.overlay,
                container=args.container,
                fit=FitPolicy(args.fit),
            )
            print(report.summary() if args.no_json else report.model_dump_json(indent=2))

        return 0

    except (MediVisionError, ValueError, OSError) as e:
        print(f"\n[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
