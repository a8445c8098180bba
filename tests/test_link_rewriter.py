import json

import httpx

from inkwell.newsletter.link_rewriter import LinkRewriter, apply_links, collect_links
from inkwell.newsletter.render_model import RenderModelBuilder
from inkwell.newsletter.url_shortener import UrlShortener

BASE_URL = "https://app.example"


def transport(failing_url=None):
    def handler(request: httpx.Request):
        url = json.loads(request.content)["url"]
        if url == failing_url:
            return httpx.Response(503, json={"error": "unavailable"})
        slug = url.rsplit("/", 1)[-1] or "root"
        return httpx.Response(200, json={"success": True, "shortUrl": f"https://s.example/{slug}", "shortCode": slug})
    return httpx.MockTransport(handler)


async def build_model(issues):
    return await RenderModelBuilder(issues, BASE_URL).build("issue-1", unsubscribe_token="tok")


class TestCollectLinks:
    async def test_collects_content_links_once_in_order(self, store, issues):
        from inkwell.models.newsletter import ContentBlock
        store.blocks.append(ContentBlock(id="dup", issue_id="issue-1", type="image", sort_order=4,
                                         data={"url": "https://cdn.example/x.png", "link": "https://news.example/a"}))
        model = await build_model(issues)

        assert collect_links(model) == [
            "https://news.example/a",
            "https://sponsor.example",
            "https://twitter.com/weekly",
        ]

    async def test_system_urls_are_never_collected(self, issues):
        model = await build_model(issues)
        links = collect_links(model)

        assert model.urls.unsubscribe not in links
        assert model.urls.web_version not in links
        assert model.urls.publication_home not in links


class TestLinkRewriter:
    async def test_rewrites_every_occurrence(self, issues, link_cache):
        model = await build_model(issues)
        rewriter = LinkRewriter(UrlShortener(link_cache, api_key="key", transport=transport()))

        rewritten = await rewriter.rewrite(model)

        assert rewritten.blocks[0].data.link == "https://s.example/a"
        assert rewritten.blocks[1].data.link == "https://s.example/sponsor.example"
        assert rewritten.footer.social_links[0].url == "https://s.example/weekly"
        assert rewritten.blocks[-1].data.social_links[0].url == "https://s.example/weekly"
        assert rewritten.urls == model.urls

    async def test_one_failure_returns_original_model(self, issues, link_cache):
        model = await build_model(issues)
        rewriter = LinkRewriter(UrlShortener(
            link_cache, api_key="key", transport=transport(failing_url="https://sponsor.example")
        ))

        assert await rewriter.rewrite(model) == model

    async def test_unconfigured_shortener_returns_original(self, issues, link_cache):
        model = await build_model(issues)
        assert await LinkRewriter(UrlShortener(link_cache, api_key="")).rewrite(model) is model

    async def test_model_without_links_is_untouched(self, store, issues, link_cache):
        store.blocks[:] = [b for b in store.blocks if b.type == "text"]
        store.publications["pub-1"] = store.publications["pub-1"].model_copy(update={"default_footer_id": None})
        model = await build_model(issues)

        rewriter = LinkRewriter(UrlShortener(link_cache, api_key="key", transport=transport()))
        assert await rewriter.rewrite(model) is model

    async def test_apply_links_leaves_input_unchanged(self, issues):
        model = await build_model(issues)
        apply_links(model, {"https://news.example/a": "https://s.example/a"})
        assert model.blocks[0].data.link == "https://news.example/a"
