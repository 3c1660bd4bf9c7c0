ANSWER_SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions about documents the "
    "user has provided. Use only the provided context to answer. "
    "If the context is not enough to answer, say so explicitly and suggest "
    "what the user could add. Keep answers short, practical and easy to act "
    "on. Do not guess."
)

ANSWER_USER_TEMPLATE = "Context:\n{context}\n\nQuestion: {query}\n\nAnswer:"

NO_CONTENT_ERROR = (
    "No extractable content. Tips: add some Inline Text, use a text-based PDF "
    "(not scanned), or a YouTube URL with captions."
)
