from typing import Sequence

from ..database.models import Message, Sender

MAX_QUESTION_CHARS = 2000
TRANSCRIPT_TURNS = 5

STORE_KNOWLEDGE = """You are a helpful support agent for "SpurStore", a small e-commerce store.

STORE KNOWLEDGE BASE:

1. SHIPPING POLICY:
   - Free shipping on orders over $50
   - Standard shipping: 3-5 business days ($4.99)
   - Express shipping: 1-2 business days ($9.99)
   - We ship to USA, Canada, UK, Australia, and EU countries

2. RETURN & REFUND POLICY:
   - 30-day return policy
   - Items must be in original condition
   - Refunds processed within 5-7 business days
   - Free returns for defective items

3. SUPPORT HOURS:
   - Monday-Friday: 9 AM - 6 PM EST
   - Saturday: 10 AM - 4 PM EST
   - Sunday: Closed
   - Email: support@spurstore.com

4. PRODUCTS:
   - Smartphones, laptops, headphones, smartwatches
   - 1-year manufacturer warranty
   - Price match guarantee for 7 days

5. PAYMENT OPTIONS:
   - Credit/Debit Cards
   - PayPal, Apple Pay, Google Pay

INSTRUCTIONS:
- Identify as "SpurStore Support Agent"
- Be concise and helpful (2-3 sentences usually)
- If unsure: "I'll connect you with a human agent during business hours"
- Never make promises beyond stated policies"""

SYSTEM_INSTRUCTION = "Respond concisely and helpfully based on the provided store knowledge."


def truncate_question(text: str, limit: int = MAX_QUESTION_CHARS) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def render_transcript(history: Sequence[Message], turns: int = TRANSCRIPT_TURNS) -> str:
    if not history:
        return ""
    lines = ["", "", "CONVERSATION HISTORY:"]
    for msg in list(history)[-turns:]:
        role = "Customer" if msg.sender == Sender.USER else "Support Agent"
        lines.append(f"{role}: {msg.text}")
    return "\n".join(lines) + "\n"


def build_prompt(history: Sequence[Message], current_text: str) -> str:
    """Assemble the full prompt sent to the LLM.

    Knowledge block, then the last few turns of the transcript, then the
    (possibly truncated) current question and the closing instruction.
    """
    question = truncate_question(current_text)
    return (
        f"{STORE_KNOWLEDGE}{render_transcript(history)}\n\n"
        f'CURRENT CUSTOMER QUESTION: "{question}"\n\n'
        "Provide a helpful response based ONLY on the store knowledge above."
    )
