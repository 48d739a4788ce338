"""Prompt templates and canned responses used by the response strategies."""

from shared.models.bot import Bot
from shared.models.conversation import Message

CLASSIFIER_SYSTEM_PROMPT = """You are an intent classifier. Analyze the user's message and classify it into ONE of these categories:

1. NEEDS_RETRIEVAL - User is asking for specific information that would require searching through documents/knowledge base
   Examples: "What is the refund policy?", "Show me pricing details", "How do I integrate the API?"

2. GENERAL_CHAT - General questions about the topic that can be answered without specific documents
   Examples: "What can you help me with?", "Tell me about your service", "Can you explain what you do?"

3. SMALL_TALK - Greetings, thanks, casual conversation
   Examples: "Hello", "Hi there", "Thank you", "Thanks!", "Goodbye"

Bot Context: {bot_context}

Respond ONLY with a JSON object in this exact format:
{{"type": "NEEDS_RETRIEVAL", "confidence": 0.95}}

Use confidence score 0-1 based on how certain you are."""

RAG_SYSTEM_PROMPT = """You are {bot_name}, an AI assistant that answers questions based strictly on the provided context from uploaded documents.
{bot_description}
IMPORTANT RULES:
1. ONLY answer questions using information from the provided context
2. If the context doesn't contain relevant information, politely decline and suggest topics you can help with
3. Be concise but comprehensive in your answers
4. Always cite information from the context when possible
5. Maintain a helpful and professional tone
6. If asked about topics outside your knowledge base, explain that you can only help with information from the uploaded documents

CONTEXT FROM DOCUMENTS:
{context}

CONVERSATION HISTORY:
{chat_history}{faq_context}"""

GENERAL_CHAT_SYSTEM_PROMPT = """You are {bot_name}, a helpful assistant.
{bot_description}
Answer briefly and stay within the scope described above. If the user needs specific facts from documents, invite them to ask a concrete question.{faq_context}"""

NO_HISTORY = "No previous conversation."

NO_CONTEXT_RESPONSE = (
    "I'm sorry, but I couldn't find relevant information in my knowledge base to answer your question. "
    "You could try rephrasing it, asking about a more specific topic, or checking whether the relevant documents have been uploaded."
)

GENERATION_ERROR_RESPONSE = (
    "I apologize, but I encountered an error while processing your question. Please try again later."
)

INVALID_CREDENTIAL_RESPONSE = (
    "I can't answer right now because the AI provider rejected this bot's API key. "
    "Please ask the bot owner to update the API key in the bot settings."
)

SMALL_TALK_RESPONSES = [
    "I'm here to help! What would you like to know?",
    "Happy to help! Feel free to ask me anything.",
    "Hi there! How can I assist you today?",
    "Sure thing! Let me know what you need.",
]


def describe_bot(bot: Bot) -> str:
    return bot.description or bot.name or "General assistant"


def format_chat_history(messages: list[Message], limit: int = 10) -> str:
    """Last ``limit`` messages as "ROLE: content" lines."""
    recent = messages[-limit:] if limit else messages
    if not recent:
        return NO_HISTORY
    return "\n".join(f"{m.role.upper()}: {m.content}" for m in recent)


def build_faq_context(bot: Bot) -> str:
    """Numbered list of the bot's enabled FAQs for generation prompts, empty if there are none."""
    enabled = [faq for faq in bot.faqs if faq.enabled]
    if not enabled:
        return ""
    entries = [
        f"{i}. Q: {faq.question or ', '.join(faq.keywords) or 'N/A'}\n   A: {faq.answer or 'N/A'}"
        for i, faq in enumerate(enabled, start=1)
    ]
    return "\n\nFREQUENTLY ASKED QUESTIONS:\nUse these FAQs to guide your responses when relevant:\n\n" + "\n\n".join(entries)
