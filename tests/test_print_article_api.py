import pytest

from articlepdf.app import create_app
from articlepdf.core.pdf_document import PDFDocument
from articlepdf.core.state import get_render_config
from articlepdf.plugins.pdf_export import plugin

URL = "/print/article"
ARTICLE = """
<div class="mod_article block" id="article-12">
    <h1>Foo &amp; Bar</h1>
    <p><span style="text-decoration: underline;">Underlined</span> text with a
    <a href="news.html?pdf=12&amp;page=2">print link</a>.</p>
</div>
"""


@pytest.fixture
def app(render_settings):
    return create_app(dict(render_settings, TESTING=True, LANGUAGE='de-DE', LOG_LEVEL='DEBUG'))


@pytest.fixture
def client(app):
    return app.test_client()


class TestPrintArticleEndpoint:
    def test_json_request_returns_download(self, client):
        response = client.post(URL, json={"article": ARTICLE, "title": "Foo &amp; Bar", "keywords": "foo, bar"})

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        disposition = response.headers['Content-Disposition']
        assert disposition.startswith('attachment')
        assert 'foo-bar.pdf' in disposition
        assert response.data.startswith(b'%PDF')

        info = PDFDocument.read_metadata(response.data)
        assert info['title'] == 'Foo &amp; Bar'
        assert info['keywords'] == 'foo, bar'
        assert info['author'] == 'http://localhost/'

    def test_base_url_comes_from_first_request(self, client):
        client.post(URL, json={"article": "<p>x</p>", "title": "x"})
        client.post(URL, json={"article": "<p>y</p>", "title": "y"}, base_url='http://other.example/')

        assert get_render_config().base_url == 'http://localhost/'

    def test_form_request(self, client):
        response = client.post(URL, data={"article": "<p>Form body</p>", "title": "Form Article"})

        assert response.status_code == 200
        assert 'form-article.pdf' in response.headers['Content-Disposition']
        assert 'Form body' in PDFDocument.extract_text(response.data)

    def test_missing_article(self, client):
        response = client.post(URL, json={"title": "Empty"})

        assert response.status_code == 400
        assert 'error' in response.get_json()

    @pytest.mark.parametrize('body', [["article"], "article", 12])
    def test_body_that_is_not_an_object(self, client, body):
        response = client.post(URL, json=body)

        assert response.status_code == 400
        assert response.mimetype == 'application/json'
        assert 'object' in response.get_json()['error']

    def test_initialization_failure_is_reported(self, client, monkeypatch):
        monkeypatch.setattr(plugin, 'resolve_request_base_url', lambda: None)
        response = client.post(URL, json={"article": "<p>x</p>", "title": "x"})

        assert response.status_code == 500
        assert response.mimetype == 'application/json'
        assert 'base URL' in response.get_json()['error']

    def test_render_failure_sends_no_pdf(self, client, monkeypatch):
        from xhtml2pdf import pisa

        class Status:
            err = 3

        monkeypatch.setattr(pisa, 'CreatePDF', lambda *args, **kwargs: Status())
        response = client.post(URL, json={"article": "<p>x</p>", "title": "x"})

        assert response.status_code == 500
        assert not response.data.startswith(b'%PDF')


class TestAppConfiguration:
    def test_defaults_and_overrides(self, app):
        assert app.config['CHARACTER_SET'] == 'utf-8'
        assert app.config['LANGUAGE'] == 'de-DE'
        assert app.config['PDF_CREATOR'] == 'articlepdf tests'
        assert app.extensions['articlepdf.features'].get_export_handler('pdf') is plugin.export_pdf

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('ARTICLEPDF_LANGUAGE', 'fr')
        assert create_app().config['LANGUAGE'] == 'fr'
