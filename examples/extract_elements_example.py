#!/usr/bin/env python3
"""
Accessible Element Pipeline - Example Usage
===========================================

This script demonstrates how to extract ordered, classified elements from a
PDF for screen-reader overlays.

Usage:
    python examples/extract_elements_example.py path/to/form.pdf

Requirements:
    - poppler installed (for pdf2image rasterization)
    - Optional: .env with RASTER_SCALE, RASTER_TIMEOUT_SECONDS, ...
"""

import sys
import json
import asyncio
import argparse
import logging
from pathlib import Path

from accessible_pdf import Config, ElementAnalysisPipeline, ElementType
from accessible_pdf.services.pymupdf_renderer import PyMuPDFRenderer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def process_pdf(pdf_path: str, output_path: str = None, pages=None):
    """
    Run the element pipeline over a PDF.

    Args:
        pdf_path: Path to the PDF file
        output_path: Optional path to save JSON output
        pages: Optional list of 1-based page numbers
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        logger.error(f"File not found: {pdf_path}")
        return None

    renderer = PyMuPDFRenderer.from_path(pdf_path)
    try:
        pipeline = ElementAnalysisPipeline(renderer)
        result = await pipeline.analyze(pages)
    finally:
        renderer.close()

    stats = result.extraction.get_statistics()

    print("\n" + "=" * 60)
    print("ACCESSIBLE ELEMENT RESULTS")
    print("=" * 60)
    print(f"\nDocument: {pdf_path.name}")
    print(f"Pages Analyzed: {len(result.extraction.pages)}")
    print(f"Total Elements: {stats.total}")
    print(f"Unstructured Text: {stats.unstructured_text.total}")
    print(f"Processing Time: {result.processing_time_ms}ms")

    for report in result.extraction.pages:
        if report.failed:
            print(f"  ! Page {report.page_number} failed: {report.error}")
        for warning in report.warnings:
            print(f"  ? Page {report.page_number}: {warning}")

    print("\n" + "-" * 40)
    print("READING ORDER")
    print("-" * 40)

    for element in result.elements:
        marker = ""
        if element.type == ElementType.CHECKBOX:
            marker = " [x]" if element.is_checked else " [ ]"
        elif element.is_likely_unstructured:
            marker = " [prose]"

        text = element.text or element.field_name or ""
        print(f"  {element.reading_order:4}. p{element.page_number} [{element.type.value:10}]{marker} "
              f"\"{text[:50]}{'...' if len(text) > 50 else ''}\"")

    print("\n" + "-" * 40)
    print("STATISTICS")
    print("-" * 40)
    print("\nElement Type Distribution:")
    for etype, count in sorted(stats.by_type.items(), key=lambda x: -x[1]):
        print(f"  {etype}: {count}")

    if output_path:
        output_path = Path(output_path)
        with open(output_path, 'w') as f:
            json.dump(result.to_dict(), f, indent=2)
        logger.info(f"Output saved to: {output_path}")

    return result


def main():
    parser = argparse.ArgumentParser(
        description='Accessible PDF Element Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Analyze a PDF and print the reading order
    python extract_elements_example.py form.pdf

    # Analyze pages 1 and 3 only
    python extract_elements_example.py form.pdf --pages 1 3

    # Save output to JSON
    python extract_elements_example.py form.pdf -o elements.json
        """
    )

    parser.add_argument(
        'pdf_path',
        help='Path to PDF file to analyze'
    )

    parser.add_argument(
        '-o', '--output',
        help='Path to save JSON output'
    )

    parser.add_argument(
        '--pages',
        nargs='+',
        type=int,
        help='1-based page numbers to analyze (default: all)'
    )

    args = parser.parse_args()

    try:
        Config.validate()
    except ValueError as e:
        print(f"\nConfiguration error: {e}")
        sys.exit(1)

    asyncio.run(process_pdf(args.pdf_path, args.output, args.pages))


if __name__ == '__main__':
    main()
