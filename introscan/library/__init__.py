"""Media library enumeration and the analysis queue."""

from introscan.library.index import LibraryIndex, iter_library, parse_season_number
from introscan.library.queue import QueueManager
