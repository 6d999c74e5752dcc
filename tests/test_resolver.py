from imgcache.core.keys import key_for_url, key_for_variant
from imgcache.core.resolver import flatten_entries, resolve_variant
from imgcache.core.transform import canonicalize
from imgcache.models.records import MetadataRecord, SourceRecord, Variant

SOURCE_KEY = key_for_url("https://x/a.png")


def variant(tallest_side, extension="avif", digest="d"):
    spec = canonicalize(tallest_side, extension)
    return Variant(
        key=key_for_variant(SOURCE_KEY, spec),
        digest=digest,
        extension=extension,
        width=tallest_side,
        height=tallest_side // 2,
        spec=spec,
    )


def record(*variants, source_extension="png"):
    source = SourceRecord(key=SOURCE_KEY, digest="s", extension=source_extension, width=800, height=600)
    return MetadataRecord(source=source, variants=list(variants))


class TestResolveVariant:
    def test_exact_match_returns_first_variant(self):
        rec = record(variant(200), variant(400))
        assert resolve_variant(rec, canonicalize(200, "avif")) == rec.variants[0]
        assert resolve_variant(rec, canonicalize(400, "avif")) == rec.variants[1]

    def test_no_exact_match_is_a_miss(self):
        rec = record(variant(200), variant(400))
        assert resolve_variant(rec, canonicalize(300, "avif")) is None

    def test_extension_must_match(self):
        rec = record(variant(200, "avif"))
        assert resolve_variant(rec, canonicalize(200, "heif")) is None

    def test_earliest_match_wins(self):
        rec = record(variant(200, digest="first"), variant(200, digest="second"))
        assert resolve_variant(rec, canonicalize(200)).digest == "first"

    def test_portrait_variants_match_on_height(self):
        spec = canonicalize(300)
        tall = Variant(key=key_for_variant(SOURCE_KEY, spec), digest="d", extension="avif", width=100, height=300, spec=spec)
        assert resolve_variant(record(tall), spec) == tall

    def test_source_matches_when_size_and_format_agree(self):
        rec = record(variant(200), source_extension="avif")
        assert resolve_variant(rec, canonicalize(800, "avif")) == rec.source

    def test_without_tallest_side_returns_source(self):
        rec = record(variant(200))
        assert resolve_variant(rec, canonicalize(None, "heif")) == rec.source

    def test_flatten_puts_source_first(self):
        rec = record(variant(200))
        assert flatten_entries(rec) == [rec.source, rec.variants[0]]
