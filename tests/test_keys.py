"""
Tests for cache key derivation.
"""

import hashlib

from ctrequest.core.cache import canonical_json, derive_key


class TestDeriveKey:
    """Test cases for derive_key."""

    def test_key_is_32_hex_chars(self):
        key = derive_key("scope", ["tms_01"])

        assert len(key) == 32
        int(key, 16)

    def test_key_is_md5_of_scope_and_json(self):
        expected = hashlib.md5(b'twitter search api["tms_01"]').hexdigest()

        assert derive_key("twitter search api", ["tms_01"]) == expected

    def test_deterministic(self):
        params = [{"q": "banana since:2011-07-11", "count": 100}]

        assert derive_key("s", params) == derive_key("s", params)

    def test_scope_namespaces_keys(self):
        assert derive_key("a", ["x"]) != derive_key("b", ["x"])

    def test_empty_scope(self):
        assert derive_key("", ["x"]) == derive_key(None, ["x"])

    def test_object_key_order_does_not_matter(self):
        first = [{"q": "apple", "count": 100, "opts": {"lang": "en", "geo": None}}]
        second = [{"count": 100, "opts": {"geo": None, "lang": "en"}, "q": "apple"}]

        assert derive_key("s", first) == derive_key("s", second)

    def test_list_order_matters(self):
        assert derive_key("s", ["a", "b"]) != derive_key("s", ["b", "a"])

    def test_tuple_and_list_share_a_key(self):
        assert derive_key("s", ("a", 1)) == derive_key("s", ["a", 1])

    def test_distinct_primitive_types(self):
        assert derive_key("s", [1]) != derive_key("s", ["1"])


class TestCanonicalJson:
    """Test cases for canonical_json."""

    def test_compact_and_sorted(self):
        assert canonical_json([{"b": 1, "a": [1, 2]}]) == '[{"a":[1,2],"b":1}]'

    def test_non_string_keys(self):
        assert canonical_json({2: "b", 1: "a"}) == '{"1":"a","2":"b"}'

    def test_unknown_types_fall_back_to_str(self):
        class Token:
            def __str__(self):
                return "token-1"

        assert canonical_json([Token()]) == '["token-1"]'

    def test_integers_beyond_64_bits(self):
        params = [2**70, {"b": 1, "a": 2}]

        assert canonical_json(params) == '[1180591620717411303424,{"a":2,"b":1}]'

    def test_wide_integers_are_keyed(self):
        key = derive_key("s", [2**70])

        assert key == derive_key("s", [2**70])
        assert key != derive_key("s", [2**70 + 1])

    def test_circular_params_are_keyed(self):
        params: list = []
        params.append(params)

        assert len(derive_key("s", [params])) == 32
