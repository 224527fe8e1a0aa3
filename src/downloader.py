"""
Browser Extension Downloader
Fetches .crx packages from the Chrome Web Store and Microsoft Edge Add-ons update services
"""

import requests
from tqdm import tqdm
from enum import Enum


class BrowserType(Enum):
    """Supported browser extension stores"""
    CHROME = "chrome"
    EDGE = "edge"


class DownloadError(Exception):
    """Raised when a store does not hand back a package"""

    def __init__(self, extension_id, reason, status_code=None):
        self.extension_id = extension_id
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{extension_id}: {reason}")


class ExtensionDownloader:
    """Downloads browser extension packages by ID"""

    # Update service endpoints for each store
    DOWNLOAD_URLS = {
        BrowserType.CHROME: "https://clients2.google.com/service/update2/crx",
        BrowserType.EDGE: "https://edge.microsoft.com/extensionwebstorebase/v1/crx"
    }

    CHUNK_SIZE = 8192

    def __init__(self, browser=BrowserType.CHROME, timeout=30, session=None, show_progress=True):
        self.browser = browser
        self.timeout = timeout
        self.show_progress = show_progress
        self.session = session or requests.Session()

        # User agent to mimic browser
        self.headers = {
            'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0'
        }

    def download_params(self, extension_id):
        """Query parameters for the update service request"""
        if self.browser == BrowserType.CHROME:
            # The store answers 204 to clients older than 31.0.1609.0, so claim a
            # version from the future. prod/prodchannel may be omitted but the
            # values Chromium sends are harmless.
            return {
                'response': 'redirect',
                'os': 'win',
                'arch': 'x86-64',
                'nacl_arch': 'x86-64',
                'prod': 'chromiumcrx',
                'prodchannel': 'unknown',
                'prodversion': '9999.0.9999.0',
                'acceptformat': 'crx2,crx3',
                'x': f'id={extension_id}&uc'
            }
        if self.browser == BrowserType.EDGE:
            return {
                'response': 'redirect',
                'x': f'id={extension_id}&installsource=ondemand&uc'
            }
        raise ValueError(f"Unsupported browser: {self.browser}")

    def build_download_url(self, extension_id):
        """Fully encoded download URL for an extension"""
        request = requests.Request(
            'GET',
            self.DOWNLOAD_URLS[self.browser],
            params=self.download_params(extension_id)
        )
        return request.prepare().url

    def fetch(self, extension_id):
        """
        Download an extension package into memory

        Args:
            extension_id (str): The extension ID (32-character string)

        Returns:
            bytes: Raw .crx contents

        Raises:
            DownloadError: Transport failure, non-200 status, or an HTML page
                instead of a package
        """
        browser_name = self.browser.value.capitalize()
        print(f"[+] Downloading {browser_name} extension: {extension_id}")

        try:
            response = self.session.get(
                self.DOWNLOAD_URLS[self.browser],
                params=self.download_params(extension_id),
                headers=self.headers,
                stream=True,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise DownloadError(extension_id, f"request failed: {e}") from e

        with response:
            if response.status_code != 200:
                raise DownloadError(
                    extension_id,
                    f"HTTP status {response.status_code}, expected 200",
                    status_code=response.status_code
                )

            # Unknown IDs get an HTML page back instead of a package
            content_type = response.headers.get('content-type', '')
            if 'text/html' in content_type.lower():
                raise DownloadError(
                    extension_id,
                    f"extension not found in {browser_name} store",
                    status_code=response.status_code
                )

            try:
                return self._read_body(response, extension_id)
            except requests.exceptions.RequestException as e:
                raise DownloadError(extension_id, f"download interrupted: {e}") from e

    def _read_body(self, response, extension_id):
        try:
            total_size = int(response.headers.get('content-length') or 0)
        except ValueError:
            total_size = 0

        chunks = []
        if total_size and self.show_progress:
            with tqdm(total=total_size, unit='B', unit_scale=True, desc=extension_id) as pbar:
                for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                    if chunk:
                        chunks.append(chunk)
                        pbar.update(len(chunk))
        else:
            for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                if chunk:
                    chunks.append(chunk)

        return b''.join(chunks)

    def close(self):
        self.session.close()
