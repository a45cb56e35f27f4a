import logging
from enum import Enum

logger = logging.getLogger(__name__)


class FeatureType(Enum):
    EXPORT_HANDLER = "export_handler"
    EVENT_LISTENER = "event_listener"


class FeatureState(Enum):
    STANDARD = "standard"
    EXPERIMENTAL = "experimental"


class Feature:
    def __init__(self, name, handler, feature_type, state=FeatureState.STANDARD, meta=None):
        self.name = name
        self.handler = handler
        self.feature_type = feature_type
        self.state = state
        self.meta = meta or {}

    def __repr__(self):
        return f"Feature({self.name!r}, {self.feature_type.value})"


class FeatureRegistry:
    """
    Collects the features plugins expose through get_features() and routes
    events to the listeners registered for them.
    """

    def __init__(self):
        self._features = []

    def register(self, feature):
        self._features.append(feature)
        logger.debug(f"FeatureRegistry: Registered {feature!r}")

    def register_plugin(self, plugin_module):
        features = plugin_module.get_features()
        for feature in features:
            self.register(feature)
        logger.info(f"FeatureRegistry: Loaded {len(features)} feature(s) from {plugin_module.__name__}")
        return features

    def get_features(self, feature_type=None):
        if feature_type is None:
            return list(self._features)
        return [f for f in self._features if f.feature_type == feature_type]

    def get_export_handler(self, extension):
        for feature in self.get_features(FeatureType.EXPORT_HANDLER):
            if feature.meta.get("extension") == extension:
                return feature.handler
        return None

    def dispatch(self, event, *args, **kwargs):
        """
        Call the listeners of ``event`` in registration order and return the
        first result that is not None. Listener exceptions propagate.
        """
        for feature in self.get_features(FeatureType.EVENT_LISTENER):
            if feature.meta.get("event") != event:
                continue
            result = feature.handler(*args, **kwargs)
            if result is not None:
                return result
        logger.debug(f"FeatureRegistry: No listener handled '{event}'")
        return None
