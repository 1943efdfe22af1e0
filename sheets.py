import logging
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials

from config import SHEETS_SCOPES, VALUE_INPUT_OPTION, Settings
from models import SpacePledged, StatsSnapshot, build_row, utc_timestamp

logger = logging.getLogger(__name__)


class SheetWriter:
    """Appends snapshot rows to named ranges of the tracking spreadsheet."""

    def __init__(self, settings: Settings):
        self.spreadsheet_id = settings.spreadsheet_id
        self.setup_google_sheets(settings)

    def setup_google_sheets(self, settings: Settings):
        """Setup Google Sheets client."""
        logger.info("Setting up Google authentication...")
        creds = Credentials.from_service_account_info(
            settings.service_account_info(), scopes=SHEETS_SCOPES
        )
        self.gc = gspread.authorize(creds)
        self.spreadsheet = self.gc.open_by_key(self.spreadsheet_id)
        logger.info(f"Using Google Sheet ID: {self.spreadsheet_id}")

    def append(self, range_name: str, snapshot: StatsSnapshot,
               space_pledged: SpacePledged, timestamp: Optional[str] = None):
        """
        Append one row to ``range_name``.

        Returns the appended row, or None when the snapshot has no node
        count and nothing was written.
        """
        if snapshot.node_count is None:
            logger.warning(f"Skipping {range_name} data append due to null node count")
            return None

        row = build_row(timestamp or utc_timestamp(), snapshot, space_pledged)
        result = self.spreadsheet.values_append(
            range_name,
            params={'valueInputOption': VALUE_INPUT_OPTION},
            body={'values': [row]},
        )
        updated = (result or {}).get('updates', {}).get('updatedRange')
        logger.info(f"{range_name} data appended to Google Sheet ({updated})")
        return row
