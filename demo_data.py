"""Demo library used by ``flask seed-demo`` and ``SEED_DEMO_DATA=1``."""
import logging

from config import DEFAULT_USER_ID

logger = logging.getLogger(__name__)

# Blank one-page A4 PDF
SAMPLE_PDF_BASE64 = (
    "JVBERi0xLjQKMSAwIG9iago8PCAvVHlwZSAvQ2F0YWxvZyAvUGFnZXMgMiAwIFIgPj4KZW5kb2JqCjIgMCBvYmoKPDwg"
    "L1R5cGUgL1BhZ2VzIC9LaWRzIFszIDAgUl0gL0NvdW50IDEgPj4KZW5kb2JqCjMgMCBvYmoKPDwgL1R5cGUgL1BhZ2Ug"
    "L1BhcmVudCAyIDAgUiAvTWVkaWFCb3ggWzAgMCA1OTUgODQyXSA+PgplbmRvYmoKeHJlZgowIDQKMDAwMDAwMDAwMCA2"
    "NTUzNSBmIAowMDAwMDAwMDA5IDAwMDAwIG4gCjAwMDAwMDAwNTggMDAwMDAgbiAKMDAwMDAwMDExNSAwMDAwMCBuIAp0"
    "cmFpbGVyCjw8IC9TaXplIDQgL1Jvb3QgMSAwIFIgPj4Kc3RhcnR4cmVmCjE4NgolJUVPRgo="
)

DEMO_SHEETS = [
    {"title": "모래 위에 성 (Castle on the Sand)", "artist": "더 플레이버스 (The Flavors)", "genre": "Pop"},
    {"title": "너의 의미 (Your Meaning)", "artist": "아이유 (IU)", "genre": "Ballad"},
    {"title": "Autumn Leaves", "artist": "Joseph Kosma", "genre": "Jazz"},
]

DEMO_SETLIST = {
    "name": "버스킹 세트 1 (Busking Set 1)",
    "description": "경복궁 근처 버스킹용 세트리스트",
}


def seed_demo(storage) -> int:
    """Insert the demo sheets plus one setlist holding the first two.

    Returns the number of sheets created.
    """
    sheets = [
        storage.create_sheet_music(
            file_type="pdf",
            file_data=SAMPLE_PDF_BASE64,
            pages=1,
            user_id=DEFAULT_USER_ID,
            **meta,
        )
        for meta in DEMO_SHEETS
    ]
    setlist = storage.create_setlist(user_id=DEFAULT_USER_ID, **DEMO_SETLIST)
    for sheet in sheets[:2]:
        storage.add_item(setlist.id, sheet.id)
    logger.info("seeded %d demo sheets and setlist %s", len(sheets), setlist.id)
    return len(sheets)
