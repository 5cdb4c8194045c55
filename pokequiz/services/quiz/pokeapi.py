"""PokeAPI adapter.

Supplies ``PokemonRecord`` values to the question generator. Only Pokemon with
official artwork are returned; anything else is treated as absent.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
from typing import Iterable, List, Optional

import requests

from pokequiz.errors import PokeApiError
from .names import clean_pokemon_name

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://pokeapi.co/api/v2'


@dataclass(frozen=True)
class PokemonRecord:
    id: int
    name: str
    image_url: str
    types: tuple = field(default_factory=tuple)


class PokeApiClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10.0, batch_size: int = 20):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.batch_size = max(1, int(batch_size))
        self._http = requests.Session()
        self._total_count: Optional[int] = None

    def total_count(self) -> int:
        """Number of species; cached for the lifetime of the client."""
        if self._total_count is not None:
            return self._total_count
        try:
            response = self._http.get(f"{self.base_url}/pokemon-species", params={'limit': 1}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PokeApiError(f'PokeAPI species count request failed: {exc}') from exc
        if not response.ok:
            raise PokeApiError(f'PokeAPI species count request failed: {response.status_code}')
        self._total_count = int(response.json()['count'])
        logger.info(f"[pokeapi-count] total={self._total_count}")
        return self._total_count

    def fetch_pokemon(self, pokemon_id: int) -> Optional[PokemonRecord]:
        try:
            response = self._http.get(f"{self.base_url}/pokemon/{pokemon_id}", timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning(f"[pokeapi-fetch] id={pokemon_id} error={exc}")
            return None
        if not response.ok:
            # Not every id in range has a Pokemon behind it
            return None
        return parse_pokemon(response.json())

    def fetch_many(self, ids: Iterable[int]) -> List[PokemonRecord]:
        """Fetch in concurrent batches; absent Pokemon are dropped."""
        ids = list(ids)
        results: List[PokemonRecord] = []
        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for start in range(0, len(ids), self.batch_size):
                batch = ids[start:start + self.batch_size]
                for record in pool.map(self.fetch_pokemon, batch):
                    if record is not None:
                        results.append(record)
        return results


def parse_pokemon(data: dict) -> Optional[PokemonRecord]:
    image_url = (((data.get('sprites') or {}).get('other') or {}).get('official-artwork') or {}).get('front_default')
    if not image_url:
        return None
    types = tuple(t['type']['name'] for t in data.get('types') or [])
    return PokemonRecord(
        id=int(data['id']),
        name=clean_pokemon_name(data['name']),
        image_url=image_url,
        types=types,
    )
