from .trie import TermTrie
from .query import SearchOptions
from .index import SearchIndex
from .service import QuranSearchService, IndexState, INDEX_CACHE_KEY
