import os
from unittest.mock import AsyncMock, patch

import fakes
from insight_api.core.config import get_settings
from insight_api.models.course import Resource, User, UserPdf
from insight_api.services.ai.summarize.service import MAX_SUMMARY_INPUT_CHARS
from insight_api.services.pdf_text import PdfTextError

PDF_BYTES = b"%PDF-1.4\n1 0 obj <<>> endobj\n%%EOF"


class ChatPdfTests(fakes.ApiTestCase):
    def setUp(self):
        super().setUp()
        self.add(
            User(name="Ada", email="ada@example.com", password="x"),
            User(name="Bob", email="bob@example.com", password="x"),
        )

    def upload(self, content_type="application/pdf", data=PDF_BYTES, text="Photosynthesis turns light into sugar."):
        with patch("insight_api.api.v1.chatpdf.extract_pdf_text", return_value=text) as extract:
            resp = self.client.post(
                "/api/chatpdf/upload",
                data={"userEmail": "Ada@Example.com"},
                files={"pdf": ("notes.pdf", data, content_type)},
            )
        self.extract = extract
        return resp

    def stored_pdf(self):
        return self.add(
            UserPdf(
                user_email="ada@example.com",
                file_name="notes.pdf",
                pdf_text="Photosynthesis turns light into sugar.",
                uploaded_at="2026-10-19T10:00:00+00:00",
            )
        )

    def test_upload_stores_extracted_text(self):
        resp = self.upload()

        self.assertEqual(resp.status_code, 200)
        pdf = resp.json()["pdf"]
        self.assertEqual(pdf["userEmail"], "ada@example.com")
        self.assertEqual(pdf["fileName"], "notes.pdf")
        self.assertEqual(pdf["pdfText"], "Photosynthesis turns light into sugar.")
        self.extract.assert_called_once_with(PDF_BYTES)

        listed = self.client.get("/api/chatpdf/list", params={"userEmail": "ada@example.com"}).json()["pdfs"]
        self.assertEqual([p["id"] for p in listed], [pdf["id"]])

    def test_upload_rejects_other_files(self):
        resp = self.upload(content_type="text/plain", data=b"hello")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Only PDF files allowed")
        self.extract.assert_not_called()

    def test_upload_without_text_is_400(self):
        self.assertEqual(self.upload(text="").status_code, 400)

    def test_unreadable_pdf_is_400(self):
        with patch("insight_api.api.v1.chatpdf.extract_pdf_text", side_effect=PdfTextError("Could not read PDF: EOF")):
            resp = self.client.post(
                "/api/chatpdf/upload",
                data={"userEmail": "ada@example.com"},
                files={"pdf": ("broken.pdf", b"%PDF", "application/pdf")},
            )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Could not read PDF", resp.json()["message"])

    @patch.dict(os.environ, {"PDF_MAX_UPLOAD_BYTES": "10"}, clear=False)
    def test_upload_size_limit(self):
        get_settings.cache_clear()
        self.assertEqual(self.upload().status_code, 413)

    def test_chat_strips_reasoning(self):
        pdf = self.stored_pdf()
        book = self.use_providers(openrouter=["<think>The user wants a short answer.</think>\n\n**Sugar** from light."])

        resp = self.client.post(
            "/api/chatpdf/chat",
            json={"pdfId": pdf.id, "question": "What does it make?", "userEmail": "ada@example.com"},
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"answer": "**Sugar** from light."})
        request = book["openrouter"].requests[0]
        self.assertEqual(request.model, "tngtech/deepseek-r1t2-chimera:free")
        self.assertIn("strictly based on the provided PDF", request.system_prompt)
        self.assertIn("Photosynthesis turns light into sugar.", request.prompt)

    def test_chat_checks_owner(self):
        pdf = self.stored_pdf()
        book = self.use_providers(openrouter=["answer"])

        other = self.client.post(
            "/api/chatpdf/chat",
            json={"pdfId": pdf.id, "question": "Why?", "userEmail": "bob@example.com"},
        )
        missing = self.client.post("/api/chatpdf/chat", json={"pdfId": 999, "question": "Why?"})

        self.assertEqual(other.status_code, 403)
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(book.created, [])

    def test_delete_with_query_or_body(self):
        first = self.stored_pdf()
        second = self.stored_pdf()

        denied = self.client.delete(f"/api/chatpdf/delete/{first.id}", params={"userEmail": "bob@example.com"})
        self.assertEqual(denied.status_code, 403)

        by_query = self.client.delete(f"/api/chatpdf/delete/{first.id}", params={"userEmail": "ada@example.com"})
        self.assertEqual(by_query.json(), {"message": "PDF deleted successfully"})

        by_body = self.client.request(
            "DELETE", f"/api/chatpdf/delete/{second.id}", json={"userEmail": "ada@example.com"}
        )
        self.assertEqual(by_body.status_code, 200)

        gone = self.client.delete(f"/api/chatpdf/delete/{first.id}", params={"userEmail": "ada@example.com"})
        self.assertEqual(gone.status_code, 404)


class ResourceTests(fakes.ApiTestCase):
    BODY = {
        "topic": "Algebra",
        "description": "Cheat sheet",
        "authorName": "Ada",
        "authorEmail": "Ada@Example.com",
        "fileUrl": "https://files.example/algebra.pdf",
        "fileName": "algebra.pdf",
    }

    def test_create_and_list(self):
        created = self.client.post("/api/resources", json=self.BODY)
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["authorEmail"], "ada@example.com")
        self.assertEqual(created.json()["views"], 0)

        self.client.post("/api/resources", json={**self.BODY, "topic": "Geometry"})
        listed = self.client.get("/api/resources").json()
        self.assertEqual([r["topic"] for r in listed], ["Geometry", "Algebra"])

    def test_missing_fields_rejected(self):
        body = dict(self.BODY)
        del body["fileUrl"]
        self.assertEqual(self.client.post("/api/resources", json=body).status_code, 422)

    def test_view_counter(self):
        resource = self.add(
            Resource(
                topic="Algebra",
                description="Cheat sheet",
                author_name="Ada",
                author_email="ada@example.com",
                file_url="https://files.example/algebra.pdf",
                file_name="algebra.pdf",
                date="2026-10-19",
                views=3,
            )
        )
        resp = self.client.put(f"/api/resources/{resource.id}/view")
        self.assertEqual(resp.json()["views"], 4)
        self.assertEqual(self.client.put("/api/resources/999/view").status_code, 404)

    def test_only_author_deletes(self):
        resource_id = self.client.post("/api/resources", json=self.BODY).json()["id"]

        denied = self.client.delete(f"/api/resources/{resource_id}", params={"userEmail": "bob@example.com"})
        self.assertEqual(denied.status_code, 403)

        ok = self.client.delete(f"/api/resources/{resource_id}", params={"userEmail": "ADA@example.com"})
        self.assertEqual(ok.json(), {"message": "Resource deleted successfully"})
        self.assertEqual(
            self.client.delete(f"/api/resources/{resource_id}", params={"userEmail": "ada@example.com"}).status_code,
            404,
        )


class SummarizeTests(fakes.ApiTestCase):
    URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42"

    def patch_youtube(self, title="Intro to Rust", transcript="ownership and borrowing"):
        title_mock = patch("insight_api.services.youtube.fetch_video_title", new=AsyncMock(return_value=title))
        transcript_mock = patch("insight_api.services.youtube.fetch_transcript", new=AsyncMock(return_value=transcript))
        fetch_title = title_mock.start()
        fetch_transcript = transcript_mock.start()
        self.addCleanup(title_mock.stop)
        self.addCleanup(transcript_mock.stop)
        return fetch_title, fetch_transcript

    def test_summary_from_title_and_transcript(self):
        fetch_title, _ = self.patch_youtube()
        book = self.use_providers(openrouter=["### Video Overview\nRust memory model.\n"])

        resp = self.client.post("/api/summarize", json={"videoUrl": self.URL})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"summary": "### Video Overview\nRust memory model."})
        fetch_title.assert_awaited_once_with("dQw4w9WgXcQ")
        request = book["openrouter"].requests[0]
        self.assertEqual(request.prompt, "VIDEO TITLE: Intro to Rust\nTRANSCRIPT: ownership and borrowing")
        self.assertIn("### Practical Takeaways", request.system_prompt)

    def test_missing_transcript_uses_title(self):
        self.patch_youtube(transcript="")
        book = self.use_providers(openrouter=["summary"])

        self.client.post("/api/summarize", json={"videoUrl": "https://youtu.be/dQw4w9WgXcQ"})

        self.assertIn("TRANSCRIPT: No transcript available", book["openrouter"].requests[0].prompt)

    def test_long_transcript_truncated(self):
        self.patch_youtube(transcript="x" * (MAX_SUMMARY_INPUT_CHARS * 2))
        book = self.use_providers(openrouter=["summary"])

        self.client.post("/api/summarize", json={"videoUrl": self.URL})

        self.assertEqual(len(book["openrouter"].requests[0].prompt), MAX_SUMMARY_INPUT_CHARS)

    def test_invalid_url_is_400(self):
        fetch_title, _ = self.patch_youtube()
        resp = self.client.post("/api/summarize", json={"videoUrl": "https://example.com/video"})
        self.assertEqual(resp.status_code, 400)
        fetch_title.assert_not_awaited()

    def test_no_metadata_is_422(self):
        self.patch_youtube(title="", transcript="")
        book = self.use_providers(openrouter=["summary"])

        resp = self.client.post("/api/summarize", json={"videoUrl": self.URL})

        self.assertEqual(resp.status_code, 422)
        self.assertEqual(book.created, [])
