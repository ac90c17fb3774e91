"""
Catalog loading for the composer screen.

Patients and medicines do not depend on each other, so both lists are
requested together and the caller waits for both before any dependent fetch
(e.g. the prescription being edited).
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from .exceptions import BaseAppException, FetchError

logger = logging.getLogger(__name__)


def load_catalogs(client):
    """Return (patients, medicines). Raises FetchError if either list fails."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        patients_future = pool.submit(client.list_patients)
        medicines_future = pool.submit(client.list_medicines)
        try:
            patients = patients_future.result()
            medicines = medicines_future.result()
        except BaseAppException as exc:
            logger.warning("[Catalogs] load failed: %s", exc.message)
            raise FetchError(message='Failed to load data', detail={'reason': exc.message}) from exc

    logger.debug("[Catalogs] %d patient(s), %d medicine(s)", len(patients), len(medicines))
    return patients, medicines
