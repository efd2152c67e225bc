from langchain_core.prompts import PromptTemplate

SYSTEM_BASE = """You are a helpful assistant that answers questions about the user's uploaded documents,
which may include text files, images, audio recordings and videos.
Give a clear, concise and natural answer based only on the context below."""

INSTRUCTIONS = """Instructions:
1. For videos, draw on the transcription and the key moments
2. For audio, explain what was said using the transcription
3. For images, describe what is shown and any text found in them
4. Answer the question directly and conversationally
5. If the context does not settle the question, say so
6. Do not mention extraction details such as OCR or coordinates"""

ANSWER_TEMPLATE = PromptTemplate(
    input_variables=["documents", "question"],
    template=(
        SYSTEM_BASE + "\n\n"
        "Context:\n{documents}\n\n"
        "User question: {question}\n\n"
        + INSTRUCTIONS + "\n\n"
        "Answer:"
    ),
)
