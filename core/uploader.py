import cloudinary
import cloudinary.uploader
import json
import logging
from config import (
    AGGRESSIVE_UPLOAD_OPTIONS,
    CLOUDINARY_API_KEY,
    CLOUDINARY_API_SECRET,
    CLOUDINARY_CLOUD_NAME,
    FILE_TOO_LARGE_MARKERS,
    MAX_COMPRESSION_UPLOAD_OPTIONS,
    MAX_UPLOAD_FILE_SIZE_MB,
    UPLOAD_EXTENSIONS,
    UPLOAD_OPTIONS,
    UPLOAD_RESULTS_FILE,
    UPLOAD_TIMEOUT_SECONDS,
)
from core.models import UploadResult
from core.report import RunReport, UnitResult
from pathlib import Path
from utils.jsonio import read_json, write_json

logger = logging.getLogger(__name__)


class CloudinaryConfigError(RuntimeError):
    """Raised when Cloudinary credentials are missing"""


def configure_cloudinary(
    cloud_name: str = CLOUDINARY_CLOUD_NAME,
    api_key: str = CLOUDINARY_API_KEY,
    api_secret: str = CLOUDINARY_API_SECRET,
) -> None:
    """Configure the Cloudinary SDK, failing before any upload if a credential is missing"""
    credentials = {
        'CLOUDINARY_CLOUD_NAME': cloud_name,
        'CLOUDINARY_API_KEY': api_key,
        'CLOUDINARY_API_SECRET': api_secret,
    }
    missing = [name for name, value in credentials.items() if not value]
    if missing:
        raise CloudinaryConfigError(
            f"Missing Cloudinary credentials: {', '.join(missing)}. Set them in the environment or in a .env file."
        )

    cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)


def is_file_too_large_error(error: Exception) -> bool:
    message = str(error)
    return any(marker in message for marker in FILE_TOO_LARGE_MARKERS)


def is_timeout_error(error: Exception) -> bool:
    if isinstance(error, TimeoutError):
        return True
    message = str(error).lower()
    return 'timeout' in message or 'timed out' in message


class CloudinaryUploader:
    """Upload itinerary images to Cloudinary and record the results next to them"""

    def __init__(
        self,
        credentials: dict | None = None,
        timeout: int = UPLOAD_TIMEOUT_SECONDS,
        max_file_size_mb: int = MAX_UPLOAD_FILE_SIZE_MB,
        force: bool = False,
        report: RunReport | None = None,
        dry_run: bool = False,
    ):
        self.timeout = timeout
        self.max_file_size = max_file_size_mb * 1024 * 1024
        self.force = force
        self.report = report or RunReport('upload-cloudinary')
        self.dry_run = dry_run

        if not dry_run:
            configure_cloudinary(**(credentials or {}))

    def _upload(self, file_path: Path, public_id: str, options: dict) -> dict:
        return cloudinary.uploader.upload(str(file_path), public_id=public_id, timeout=self.timeout, **options)

    def upload_file(self, file_path: Path, folder: str) -> UploadResult:
        """
        Upload a single image

        Files above the size limit are sent with aggressive compression. A "file too large"
        rejection is retried once with maximum compression and a timeout is retried once
        with the same options. Any other error propagates.
        """
        # public_id already carries the folder; passing folder as well would nest it twice
        public_id = f"{folder}/{file_path.stem}"
        file_size = file_path.stat().st_size
        size_mb = file_size / 1024 / 1024

        options = UPLOAD_OPTIONS
        if file_size > self.max_file_size:
            logger.warning(f"File too large ({size_mb:.2f}MB), applying aggressive compression...")
            options = AGGRESSIVE_UPLOAD_OPTIONS

        logger.info(f"Uploading: {file_path.name} ({size_mb:.2f}MB)")
        note = None
        try:
            response = self._upload(file_path, public_id, options)
        except Exception as e:
            if is_file_too_large_error(e):
                logger.warning(f"Upload of {file_path.name} rejected as too large, retrying with maximum compression")
                response = self._upload(file_path, public_id, MAX_COMPRESSION_UPLOAD_OPTIONS)
                note = 'Maximum compression applied'
            elif is_timeout_error(e):
                logger.warning(f"Upload of {file_path.name} timed out after {self.timeout}s, retrying once")
                response = self._upload(file_path, public_id, options)
            else:
                raise

        eager = response.get('eager') or []
        secure_url = response['secure_url']
        # Maximum compression uploads request no eager variants
        result = UploadResult(
            original_filename=file_path.name,
            original_size_mb=f"{size_mb:.2f}",
            public_id=response['public_id'],
            secure_url=secure_url,
            optimized_url=eager[0]['secure_url'] if len(eager) > 0 else secure_url,
            thumbnail_url=eager[1]['secure_url'] if len(eager) > 1 else secure_url,
            cloudinary_size_kb=round(response.get('bytes', 0) / 1024),
            note=note,
        )

        logger.info(f"Uploaded: {file_path.name} -> {result.public_id} (Cloudinary: {result.cloudinary_size_kb}KB)")
        return result

    def load_manifest(self, manifest_file: Path) -> list[dict]:
        if not manifest_file.exists():
            return []
        try:
            entries = read_json(manifest_file)
        except json.JSONDecodeError as e:
            logger.warning(f"Could not parse {manifest_file}, starting a new manifest: {e}")
            return []
        return entries if isinstance(entries, list) else []

    def upload_directory(self, source_dir: Path, folder: str) -> list[UploadResult]:
        """Upload the images of one directory and merge the results into its manifest"""
        manifest_file = source_dir / UPLOAD_RESULTS_FILE
        manifest = self.load_manifest(manifest_file)
        uploaded_names = {entry.get('original_filename') for entry in manifest if isinstance(entry, dict)}

        image_files = sorted(
            item for item in source_dir.iterdir() if item.is_file() and item.suffix.lower() in UPLOAD_EXTENSIONS
        )
        logger.info(f"Uploading {len(image_files)} images to Cloudinary folder: {folder}")

        results = []
        for image_file in image_files:
            unit = f"{folder}/{image_file.name}"

            if image_file.name in uploaded_names and not self.force:
                self.report.add(UnitResult.skipped(unit, 'already uploaded'))
                continue

            if self.dry_run:
                logger.info(f"DRY RUN: Would upload {image_file.name}")
                self.report.add(UnitResult.skipped(unit, 'dry run'))
                continue

            try:
                result = self.upload_file(image_file, folder)
            except Exception as e:
                logger.error(f"Failed to upload {image_file.name}: {e}")
                self.report.add(UnitResult.failed(unit, str(e)))
                continue

            results.append(result)
            self.report.add(UnitResult.success(unit, result))

        if results:
            merged = [
                entry
                for entry in manifest
                if not (isinstance(entry, dict) and entry.get('original_filename') in {r.original_filename for r in results})
            ]
            merged.extend(result.to_dict() for result in results)
            write_json(manifest_file, merged)
            logger.info(f"Results saved to: {manifest_file}")

        return results

    def upload_all(self, root: Path, only: str | None = None) -> RunReport:
        """Upload every itinerary directory, using <travel>/<itinerary> as the Cloudinary folder"""
        for travel_dir in sorted(item for item in root.iterdir() if item.is_dir()):
            if only and travel_dir.name != only:
                continue

            for itinerary_dir in sorted(item for item in travel_dir.iterdir() if item.is_dir()):
                self.upload_directory(itinerary_dir, f"{travel_dir.name}/{itinerary_dir.name}")

        return self.report
