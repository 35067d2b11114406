#!/usr/bin/env python

"""
Travel Drafts - Static travel blog data generator

Turns a tree of geotagged photos (root/<travel>/<itinerary>/*.jpg) into the itinerary,
travel and index JSON documents read by the travel site, and optionally moves the
images to Cloudinary.

Usage:
    main.py [command] <data_dir> [travel] [options]

    Default command is 'run-pipeline' if none specified, so 'main.py data usa_2025'
    runs the whole pipeline for the usa_2025 travel only.

Commands:
    run-pipeline: Extract metadata, generate drafts and rebuild the index (default)
    extract-metadata: Write <itinerary>-metadata.json sidecars from image EXIF data
    generate-drafts: Generate <itinerary>.json and travel.json drafts, upserting the index
    update-index: Rebuild index.json from travel.json files (or refresh one travel)
    upload-cloudinary: Upload itinerary images and write cloudinary-upload-results.json
    backfill-cloudinary: Rewrite itinerary photos with their Cloudinary URLs
    clean-itinerary: Remove photos without Cloudinary data from an itinerary file
                     (data_dir is the path of the itinerary JSON file)
    validate-data: Check generated documents and write a validation report

Options:
    --dry-run: Show what would be done without making changes
    --verbose: Enable verbose logging output
    --name-clusters: Reverse geocode cluster centroids into interest point names
    --force: Re-upload images already listed in the upload manifest
"""

import argparse
import logging
import sys
from config import NAME_CLUSTERS, PIPELINE_STEPS, VALIDATION_REPORT_FILE
from core.backfill import CloudinaryBackfill
from core.drafts import DraftBuilder
from core.metadata import MetadataExtractor
from core.report import FAILED, RunReport
from core.travel_index import TravelIndexStore
from core.uploader import CloudinaryConfigError, CloudinaryUploader
from core.validator import DataValidator
from pathlib import Path
from utils.geocoding import ClusterNamer

logger = logging.getLogger(__name__)

COMMANDS = [
    'run-pipeline',
    'extract-metadata',
    'generate-drafts',
    'update-index',
    'upload-cloudinary',
    'backfill-cloudinary',
    'clean-itinerary',
    'validate-data',
]


class TravelDataPipeline:
    """Runs the metadata, draft and index steps in dependency order"""

    def __init__(self, data_dir: Path, only: str | None = None, dry_run: bool = False, name_clusters: bool = False):
        self.data_dir = data_dir
        self.only = only
        self.dry_run = dry_run
        self.name_clusters = name_clusters
        self.reports: list[RunReport] = []

        function_map = {
            'extract-metadata': self._run_extract_metadata,
            'generate-drafts': self._run_generate_drafts,
            'update-index': self._run_update_index,
        }

        self.pipeline_steps = []
        for step in PIPELINE_STEPS:
            step_with_function = step.copy()
            step_with_function['function'] = function_map[step['name']]
            self.pipeline_steps.append(step_with_function)

    def get_next_runnable_steps(self, completed_steps: set[str]) -> list[dict]:
        """Get list of steps that can be run next"""
        runnable = []

        for step in self.pipeline_steps:
            if step['name'] in completed_steps:
                continue

            dependencies = step.get('dependencies', [])
            if all(dep in completed_steps for dep in dependencies):
                runnable.append(step)

        return runnable

    def run_pipeline(self) -> bool:
        """Execute every step; any step that raises aborts the run"""
        logger.info("=== Starting Travel Data Processing ===")

        if self.dry_run:
            logger.info("DRY RUN MODE - No files will be modified")

        if not self.data_dir.is_dir():
            logger.error(f"Data directory not found: {self.data_dir}")
            return False

        completed_steps = set()
        total_steps = len(self.pipeline_steps)

        while len(completed_steps) < total_steps:
            runnable_steps = self.get_next_runnable_steps(completed_steps)

            if not runnable_steps:
                logger.error("No runnable steps found - pipeline may have circular dependencies")
                return False

            step = runnable_steps[0]
            step_num = len(completed_steps) + 1
            logger.info(f"=== Step {step_num}/{total_steps}: {step['description']} ===")

            try:
                report = step['function']()
            except Exception as e:
                logger.error(f"Error in {step['name']}: {e}")
                return False

            self.reports.append(report)
            report.log_summary()
            completed_steps.add(step['name'])

        logger.info("=== Travel Data Processing Complete ===")
        return True

    def _cluster_namer(self) -> ClusterNamer | None:
        return ClusterNamer() if self.name_clusters else None

    def _run_extract_metadata(self) -> RunReport:
        extractor = MetadataExtractor(dry_run=self.dry_run)
        return extractor.extract_all(self.data_dir, self.only)

    def _run_generate_drafts(self) -> RunReport:
        builder = DraftBuilder(cluster_namer=self._cluster_namer(), dry_run=self.dry_run)
        index_store = TravelIndexStore(self.data_dir, dry_run=self.dry_run)
        return builder.build_all(self.data_dir, self.only, index_store=index_store)

    def _run_update_index(self) -> RunReport:
        return update_index(self.data_dir, self.only, self.dry_run)


def update_index(data_dir: Path, only: str | None = None, dry_run: bool = False) -> RunReport:
    """Full index rebuild, or a targeted upsert when a single travel is named"""
    index_store = TravelIndexStore(data_dir, dry_run=dry_run)
    if only:
        report = RunReport('update-index')
        report.add(index_store.refresh(only))
        return report
    return index_store.rebuild()


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Travel Drafts - Static travel blog data generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument('command', nargs='?', default='run-pipeline', choices=COMMANDS, help='Command to execute')
    parser.add_argument('data_dir', type=Path, help='Root data directory (itinerary JSON file for clean-itinerary)')
    parser.add_argument('travel', nargs='?', default=None, help='Restrict processing to one travel directory')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done without making changes')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging output')
    parser.add_argument(
        '--name-clusters', action='store_true', default=NAME_CLUSTERS, help='Reverse geocode cluster names'
    )
    parser.add_argument('--force', action='store_true', help='Re-upload images already in the upload manifest')

    return parser.parse_args(with_default_command(sys.argv[1:] if argv is None else argv))


def with_default_command(argv: list[str]) -> list[str]:
    """Insert 'run-pipeline' when the first positional argument is not a command but the data directory"""
    argv = list(argv)
    for i, arg in enumerate(argv):
        if arg.startswith('-'):
            continue
        if arg not in COMMANDS:
            argv.insert(i, 'run-pipeline')
        break
    return argv


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s', force=True)


def run_command(args) -> bool:
    """Dispatch a parsed command. Returns True on success."""
    command = args.command
    data_dir = args.data_dir.resolve()

    if command == 'clean-itinerary':
        logger.info(f"Starting cleanup for: {data_dir}")
        result = CloudinaryBackfill(dry_run=args.dry_run).prune_unbackfilled(data_dir)
        return result.status != FAILED

    if not data_dir.is_dir():
        logger.error(f"Data directory not found: {data_dir}")
        return False

    if command == 'run-pipeline':
        pipeline = TravelDataPipeline(data_dir, only=args.travel, dry_run=args.dry_run, name_clusters=args.name_clusters)
        return pipeline.run_pipeline()

    if command == 'extract-metadata':
        report = MetadataExtractor(dry_run=args.dry_run).extract_all(data_dir, args.travel)

    elif command == 'generate-drafts':
        namer = ClusterNamer() if args.name_clusters else None
        builder = DraftBuilder(cluster_namer=namer, dry_run=args.dry_run)
        report = builder.build_all(data_dir, args.travel, index_store=TravelIndexStore(data_dir, dry_run=args.dry_run))

    elif command == 'update-index':
        report = update_index(data_dir, args.travel, args.dry_run)

    elif command == 'upload-cloudinary':
        try:
            uploader = CloudinaryUploader(force=args.force, dry_run=args.dry_run)
        except CloudinaryConfigError as e:
            logger.error(str(e))
            return False
        report = uploader.upload_all(data_dir, args.travel)

    elif command == 'backfill-cloudinary':
        if args.travel:
            logger.info(f"Processing specific travel: {args.travel}")
        else:
            logger.info("Processing all travel data")
        report = CloudinaryBackfill(dry_run=args.dry_run).backfill_all(data_dir, args.travel)

    elif command == 'validate-data':
        validator = DataValidator(data_dir)
        success = validator.run_full_validation()
        report_file = data_dir / VALIDATION_REPORT_FILE

        if args.dry_run:
            logger.info(f"DRY RUN: Would write validation report to {report_file}")
        else:
            with open(report_file, 'w') as f:
                f.write(validator.generate_validation_report())
            logger.info(f"Validation report written to {report_file}")

        summary = validator.validation_results['summary']
        print("\n=== Data Validation Results ===")
        print(f"Overall Status: {'VALID' if success else 'INVALID'}")
        print(f"Errors: {summary.get('total_errors', 0)}")
        print(f"Warnings: {summary.get('total_warnings', 0)}")
        return success

    report.log_summary()
    return True


def main(argv=None):
    args = parse_arguments(argv)

    setup_logging(args.verbose)

    try:
        success = run_command(args)
    except Exception as e:
        logger.error(f"Error in {args.command}: {e}")
        success = False

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
