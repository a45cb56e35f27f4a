import fitz  # PyMuPDF
import logging

logger = logging.getLogger(__name__)


class PDFDocument:
    """
    Post-processing and inspection of generated PDFs using PyMuPDF.
    The renderer only lays out pages; document information (title, author,
    keywords, creator) is written here.
    """

    @staticmethod
    def stamp_metadata(pdf_bytes, metadata):
        """
        Writes the document information dictionary into a PDF.

        Args:
            pdf_bytes (bytes): PDF produced by the renderer.
            metadata (DocumentMetadata): Values for the info dictionary.

        Returns:
            bytes: The PDF with updated metadata.
        """
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        try:
            doc.set_metadata({
                "title": metadata.title,
                "subject": metadata.title,
                "author": metadata.base_author_url,
                "keywords": metadata.keywords,
                "creator": metadata.creator,
                "producer": metadata.creator,
            })
            return doc.tobytes()
        finally:
            doc.close()

    @staticmethod
    def read_metadata(pdf_bytes):
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            return dict(doc.metadata or {})

    @staticmethod
    def page_count(pdf_bytes):
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            return doc.page_count

    @staticmethod
    def extract_text(pdf_bytes):
        """
        Plain text of all pages, used to check what actually got rendered.
        """
        try:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
                full_text = ""
                for page in doc:
                    full_text += page.get_text() + "\n"
                return full_text
        except Exception as e:
            logger.error(f"PDF Text Extraction Failed: {e}")
            return ""
