import unittest

from vibepulse.ingestion.url_utils import canonicalize_url, external_id, url_hash


class TestUrlCanonicalization(unittest.TestCase):
    def test_canonicalize_strips_tracking_params(self):
        raw = "https://Dev.to/alice/shipping-fast?utm_source=rss&utm_medium=feed&page=2#comments"
        self.assertEqual(canonicalize_url(raw), "https://dev.to/alice/shipping-fast?page=2")

    def test_hash_is_stable_for_equivalent_urls(self):
        a = "https://news.ycombinator.com/item?id=1&utm_source=x"
        b = "https://news.ycombinator.com/item?utm_medium=y&id=1"
        self.assertEqual(url_hash(a), url_hash(b))

    def test_product_hunt_ref_and_bare_host(self):
        self.assertEqual(
            canonicalize_url("HTTPS://www.ProductHunt.com?ref=rss"),
            "https://www.producthunt.com/",
        )
        self.assertEqual(canonicalize_url(""), "")

    def test_external_id_shape(self):
        eid = external_id("hn", "https://news.ycombinator.com/item?id=1")
        self.assertTrue(eid.startswith("hn-"))
        self.assertEqual(len(eid), len("hn-") + 20)
        self.assertEqual(eid, external_id("hn", "https://news.ycombinator.com/item?id=1#top"))
        self.assertNotEqual(eid, external_id("ph", "https://news.ycombinator.com/item?id=1"))


if __name__ == "__main__":
    unittest.main()
