import logging

from flask import Flask

from articlepdf.features.registry import FeatureRegistry
from articlepdf.plugins.pdf_export import plugin as pdf_export_plugin

logger = logging.getLogger(__name__)

# Overridable via ARTICLEPDF_<NAME> environment variables or create_app(config)
DEFAULT_SETTINGS = {
    'CHARACTER_SET': 'utf-8',
    'LANGUAGE': 'en',
    'PDF_ROOT_DIR': None,
    'PDF_FONT_DIR': None,
    'PDF_CACHE_DIR': None,
    'PDF_CREATOR': 'articlepdf',
    'LOG_LEVEL': 'INFO',
}

PLUGINS = [pdf_export_plugin]


def configure_logging(level):
    logging.basicConfig(level=level, format='%(levelname)s: %(message)s')
    logging.getLogger('articlepdf').setLevel(level)


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_SETTINGS)
    app.config.from_prefixed_env('ARTICLEPDF')
    if config:
        app.config.from_mapping(config)

    configure_logging(app.config['LOG_LEVEL'])

    registry = FeatureRegistry()
    for plugin in PLUGINS:
        registry.register_plugin(plugin)
        logger.debug(f"App: Loaded plugin '{plugin.PLUGIN_METADATA['name']}'")
        if getattr(plugin, 'blueprint', None) is not None:
            app.register_blueprint(plugin.blueprint)
    app.extensions['articlepdf.features'] = registry

    logger.info(f"App: {len(PLUGINS)} plugin(s) loaded, language '{app.config['LANGUAGE']}'")
    return app


def main():
    app = create_app()
    app.run(host='localhost', port=8000)


if __name__ == '__main__':
    main()
