"""
CRX Downloader CLI
Downloads extensions by ID and extracts the ZIP archive from each .crx package
"""

import argparse
import sys
import time

from config import ConfigError, load_config
from downloader import BrowserType, DownloadError, ExtensionDownloader
from extension_ids import collect_extension_ids, is_valid_extension_id, read_input
from unpacker import CrxFormatError, crx_file_to_zip, unwrap
from utils import format_bytes, sha256_hex, write_bytes_file


class ExtensionResult:
    """Outcome of one extension's download -> save -> unwrap -> save pipeline"""

    def __init__(self, extension_id):
        self.extension_id = extension_id
        self.crx_path = None
        self.zip_path = None
        self.error = None
        self.stage = None
        # Raw .crx write failure; does not stop the .zip from being written
        self.crx_error = None

    @property
    def ok(self):
        return self.error is None

    def fail(self, stage, error):
        self.stage = stage
        self.error = error
        return self

    def __repr__(self):
        status = 'ok' if self.ok else f'{self.stage} failed: {self.error}'
        return f"ExtensionResult({self.extension_id!r}, {status})"


class BatchReport:
    """Per-extension results of a batch run, in input order"""

    def __init__(self, results=None, skipped=None):
        self.results = list(results or [])
        self.skipped = list(skipped or [])

    @property
    def succeeded(self):
        return [r for r in self.results if r.ok]

    @property
    def failed(self):
        return [r for r in self.results if not r.ok]


class CrxBatchDownloader:
    """Runs every extension ID through the pipeline, skipping over failures"""

    def __init__(self, config, downloader=None):
        self.config = config
        self.downloader = downloader or ExtensionDownloader(
            browser=config.browser,
            timeout=config.timeout,
            show_progress=config.show_progress
        )

    def process_extension(self, extension_id):
        """
        Download one extension and write its .crx and .zip

        Args:
            extension_id (str): Validated extension ID

        Returns:
            ExtensionResult: stage/error are set when a step failed
        """
        result = ExtensionResult(extension_id)
        output_dir = self.config.output_dir

        if not is_valid_extension_id(extension_id):
            return result.fail('input', ValueError(f"not a 32-letter extension ID: {extension_id!r}"))

        try:
            data = self.downloader.fetch(extension_id)
        except DownloadError as e:
            return result.fail('download', e)

        print(f"[[OK]] Downloaded {format_bytes(len(data))} (sha256 {sha256_hex(data)})")

        # Raw package and archive are written independently
        if self.config.keep_crx:
            crx_path = output_dir / f"{extension_id}.crx"
            try:
                write_bytes_file(crx_path, data)
            except OSError as e:
                result.crx_error = e
                print(f"[!] Could not save {crx_path}: {e}")
            else:
                result.crx_path = crx_path
                print(f"[[OK]] Saved: {crx_path}")

        try:
            payload = unwrap(data)
        except CrxFormatError as e:
            return result.fail('unwrap', e)

        zip_path = output_dir / f"{extension_id}.zip"
        try:
            write_bytes_file(zip_path, payload)
        except OSError as e:
            return result.fail('save', e)
        result.zip_path = zip_path
        print(f"[[OK]] Extracted archive: {zip_path} ({format_bytes(len(payload))})")

        return result

    def run(self, extension_ids, skipped=None):
        """
        Process a list of extension IDs

        Args:
            extension_ids (list): Validated extension IDs
            skipped (list): Raw inputs already rejected for holding no ID

        Returns:
            BatchReport: One result per ID
        """
        report = BatchReport(skipped=skipped)
        total = len(extension_ids)

        print(f"[+] Downloading {total} extension(s) to {self.config.output_dir}")

        for i, extension_id in enumerate(extension_ids, 1):
            print(f"\n[{i}/{total}] Processing {extension_id}")
            result = self.process_extension(extension_id)
            report.results.append(result)

            if not result.ok:
                print(f"[[X]] {extension_id}: {result.stage} failed: {result.error}")

            if self.config.delay and i < total:
                time.sleep(self.config.delay)

        self._print_summary(report)
        return report

    def _print_summary(self, report):
        print(f"\n[+] Done: {len(report.succeeded)}/{len(report.results)} extensions unpacked")
        for result in report.failed:
            print(f"    [[X]] {result.extension_id} ({result.stage}): {result.error}")
        for result in report.results:
            if result.crx_error is not None:
                print(f"    [!] {result.extension_id}: raw .crx not saved ({result.crx_error})")
        if report.skipped:
            print(f"[!] Skipped {len(report.skipped)} input(s) with no extension ID")


def unwrap_local_files(paths):
    """Convert already-downloaded .crx files; returns a process exit code"""
    failures = 0

    for path in paths:
        try:
            crx_file_to_zip(path)
        except (ValueError, OSError) as e:
            failures += 1
            print(f"[[X]] {path}: {e}")

    print(f"\n[+] Done: {len(paths) - failures}/{len(paths)} files unpacked")
    return 1 if failures else 0


def parse_cli_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Download browser extensions and extract their ZIP archives',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Download uBlock Origin into ./downloads
  python src/crxdl.py -i cjpalhdlnbpafiamejdnhcphjbkeiagm -o downloads

  # Paste IDs or store URLs, one per line, blank line to finish
  python src/crxdl.py -o downloads

  # Extract archives from .crx files already on disk
  python src/crxdl.py --unwrap-only downloads/*.crx
        """
    )

    parser.add_argument('-i', '--extension-id', action='append', default=None,
                        help='The extension ID (or store URL) to download; repeatable')
    parser.add_argument('-o', '--download-location', default=None,
                        help='The directory to output the files to (default: .)')
    parser.add_argument('--browser', choices=[b.value for b in BrowserType], default=None,
                        help='Store to download from (default: chrome)')
    parser.add_argument('--timeout', type=float, default=None,
                        help='HTTP timeout in seconds (default: 30)')
    parser.add_argument('--delay', type=float, default=None,
                        help='Seconds to wait between downloads (default: 0)')
    parser.add_argument('--no-crx', dest='keep_crx', action='store_const', const=False, default=None,
                        help='Do not keep the raw .crx next to the .zip')
    parser.add_argument('--no-progress', dest='show_progress', action='store_const', const=False,
                        default=None, help='Disable download progress bars')
    parser.add_argument('--unwrap-only', nargs='+', metavar='FILE', default=None,
                        help='Extract .crx files already on disk instead of downloading')
    parser.add_argument('--config', default='config.json',
                        help='JSON config file with a "downloader" section (default: config.json)')

    return parser.parse_args(argv)


def main(argv=None):
    """CLI entry point"""
    args = parse_cli_args(argv)

    if args.unwrap_only:
        return unwrap_local_files(args.unwrap_only)

    try:
        config = load_config(args, config_path=args.config)
    except ConfigError as e:
        print(f"[[X]] Configuration error: {e}")
        return 2

    raw_ids = config.extension_ids or read_input()
    extension_ids, skipped = collect_extension_ids(raw_ids)

    for value in skipped:
        print(f"[!] Skipping {value!r}: no extension ID found")

    if not extension_ids:
        print("[[X]] No extension IDs to download")
        return 2

    batch = CrxBatchDownloader(config)
    try:
        report = batch.run(extension_ids, skipped=skipped)
    finally:
        batch.downloader.close()

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
