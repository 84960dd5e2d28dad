from primeur.config import settings

PRICE_HISTORY_LIMIT = settings.PRICE_HISTORY_LIMIT
DEFAULT_PAGE_SIZE = settings.DEFAULT_PAGE_SIZE
MAX_PAGE_SIZE = settings.MAX_PAGE_SIZE
