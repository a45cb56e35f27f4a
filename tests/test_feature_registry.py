import pytest

from articlepdf.features.registry import Feature, FeatureRegistry, FeatureState, FeatureType
from articlepdf.plugins.pdf_export import plugin


def listener(result, event="printArticleAsPdf", name="listener"):
    return Feature(name, handler=lambda *a, **kw: result, feature_type=FeatureType.EVENT_LISTENER, meta={"event": event})


class TestFeatureRegistry:
    def test_plugin_features_are_registered(self):
        registry = FeatureRegistry()
        features = registry.register_plugin(plugin)

        assert len(features) == 2
        assert registry.get_export_handler("pdf") is plugin.export_pdf
        assert registry.get_export_handler("docx") is None
        listeners = registry.get_features(FeatureType.EVENT_LISTENER)
        assert [f.handler for f in listeners] == [plugin.on_print_article_as_pdf]
        assert listeners[0].meta["event"] == plugin.PRINT_ARTICLE_AS_PDF
        assert listeners[0].state == FeatureState.STANDARD

    def test_dispatch_returns_first_result(self):
        registry = FeatureRegistry()
        registry.register(listener(None, name="silent"))
        registry.register(listener("other", event="somethingElse"))
        registry.register(listener("first"))
        registry.register(listener("second"))

        assert registry.dispatch("printArticleAsPdf", "<p>x</p>") == "first"

    def test_dispatch_without_listener(self):
        assert FeatureRegistry().dispatch("printArticleAsPdf") is None

    def test_dispatch_passes_arguments(self):
        received = []
        registry = FeatureRegistry()
        registry.register(Feature(
            "recorder",
            handler=lambda *args, **kwargs: received.append((args, kwargs)) or "done",
            feature_type=FeatureType.EVENT_LISTENER,
            meta={"event": "printArticleAsPdf"},
        ))

        assert registry.dispatch("printArticleAsPdf", "html", "module", language="de") == "done"
        assert received == [(("html", "module"), {"language": "de"})]

    def test_listener_errors_propagate(self):
        def failing(*args, **kwargs):
            raise RuntimeError("listener failed")

        registry = FeatureRegistry()
        registry.register(Feature("failing", handler=failing, feature_type=FeatureType.EVENT_LISTENER,
                                  meta={"event": "printArticleAsPdf"}))

        with pytest.raises(RuntimeError, match="listener failed"):
            registry.dispatch("printArticleAsPdf")
