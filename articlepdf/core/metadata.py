from dataclasses import dataclass


@dataclass(frozen=True)
class ArticleModule:
    """The CMS module descriptor that comes with a print-article event."""
    title: str
    keywords: str = ''


@dataclass(frozen=True)
class DocumentMetadata:
    title: str
    keywords: str
    language_code: str
    character_set: str
    base_author_url: str
    creator: str = 'articlepdf'
    direction: str = 'ltr'

    @classmethod
    def from_module(cls, module, language, character_set, config):
        """Derive the per-request metadata; only the first two letters of the language are kept."""
        return cls(
            title=module.title or '',
            keywords=module.keywords or '',
            language_code=(language or 'en')[:2].lower(),
            character_set=character_set or 'utf-8',
            base_author_url=config.author,
            creator=config.creator,
        )


@dataclass(frozen=True)
class PdfDownload:
    filename: str
    content: bytes
    mimetype: str = 'application/pdf'
