from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, FrozenSet, Tuple

from rapidfuzz.distance import JaroWinkler

from ledger_models import ArticleMeta, DictionaryRecord


def _s(value) -> str:
    return "" if value is None else str(value).strip()


def pair_key(article: str, decoding: str) -> str:
    return f"{_s(article)}|{_s(decoding)}"


@dataclass(frozen=True)
class DictionaryIndex:
    """Снимок листа Справочник, построенный один раз за запуск."""
    pairs: FrozenSet[str]
    acts_required: FrozenSet[str]
    wildcard_articles: FrozenSet[str]
    meta: Mapping[str, ArticleMeta]
    by_decoding: Mapping[str, FrozenSet[str]]
    decodings_by_article: Mapping[str, Tuple[str, ...]]

    def has_pair(self, article: str, decoding: str) -> bool:
        return pair_key(article, decoding) in self.pairs

    def requires_act(self, article: str) -> bool:
        return article in self.acts_required

    def is_wildcard(self, article: str) -> bool:
        return article in self.wildcard_articles

    def is_known(self, article: str) -> bool:
        return article in self.meta


def records_from_rows(rows: Iterable[list]) -> List[DictionaryRecord]:
    records = []
    for r in rows:
        r = list(r) + [None] * (5 - len(r))
        t, c, a, d, req = r[:5]
        records.append(DictionaryRecord(_s(t), _s(c), _s(a), "" if d is None else str(d), _s(req)))
    return records


def build_dictionary_index(records: Iterable[DictionaryRecord], act_marker: str = "акт",
                           wildcard_prefix: str = "#") -> DictionaryIndex:
    pairs = set()
    acts_required = set()
    wildcards = set()
    meta: Dict[str, ArticleMeta] = {}
    by_dec: Dict[str, set] = {}
    decs_by_article: Dict[str, list] = {}

    for rec in records:
        article = _s(rec.article)
        if not article:
            continue
        raw_dec = "" if rec.decoding is None else str(rec.decoding)
        dec = raw_dec.strip()

        pairs.add(pair_key(article, dec))

        required = _s(rec.act_marker).lower() == act_marker.lower()
        if required:
            acts_required.add(article)

        if raw_dec.startswith(wildcard_prefix):
            wildcards.add(article)

        # первая строка статьи задаёт тип/категорию
        if article not in meta:
            meta[article] = ArticleMeta(_s(rec.type), _s(rec.category), required, _s(rec.act_marker))

        if dec:
            by_dec.setdefault(dec, set()).add(article)
            decs = decs_by_article.setdefault(article, [])
            if dec not in decs:
                decs.append(dec)

    return DictionaryIndex(
        pairs=frozenset(pairs),
        acts_required=frozenset(acts_required),
        wildcard_articles=frozenset(wildcards),
        meta=MappingProxyType(meta),
        by_decoding=MappingProxyType({k: frozenset(v) for k, v in by_dec.items()}),
        decodings_by_article=MappingProxyType({k: tuple(v) for k, v in decs_by_article.items()}),
    )


def candidate_articles(index: DictionaryIndex, decoding: str) -> List[str]:
    """Статьи, у которых в справочнике встречается такая расшифровка."""
    return sorted(index.by_decoding.get(_s(decoding), ()))


def similar_decodings(index: DictionaryIndex, article: str, decoding: str,
                      min_similarity: float = 0.85, limit: int = 3,
                      wildcard_prefix: str = "#") -> List[str]:
    """Похожие расшифровки той же статьи, подсказка на случай опечатки."""
    target = _s(decoding).upper()
    if not target:
        return []
    scored = []
    for known in index.decodings_by_article.get(article, ()):
        if known.startswith(wildcard_prefix):
            continue
        sim = JaroWinkler.normalized_similarity(target, known.upper())
        if sim >= min_similarity and known != _s(decoding):
            scored.append((sim, known))
    scored.sort(key=lambda x: x[0], reverse=True)
    return [k for _, k in scored[:limit]]
