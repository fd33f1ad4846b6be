from typing import Optional

from support_chat.models import SupportType

PRIMING_ACKNOWLEDGEMENT = "I understand. I will help you as requested."
FALLBACK_RESPONSE = "Sorry, I could not generate a response."

GENERAL_PROMPT = (
    "You are a helpful student support assistant. Answer questions about academics, "
    "study tips, time management, and general student life. Be friendly, supportive, and concise."
)

ASSIGNMENT_PROMPT = (
    "You are an assignment helper. Guide students through their homework and projects "
    "without giving direct answers. Help them understand the process, provide hints, and encourage "
    "critical thinking. Ask clarifying questions about their assignment requirements."
)

RESEARCH_PAPER_PROMPT = (
    "You are an academic research assistant. Help students produce well-structured research papers: "
    "propose a title, an abstract, a clear outline and the content of each section. Write in a formal "
    "academic register, point out where citations are needed, and never invent sources."
)

LEARNING_PATH_PROMPT = (
    "You are a learning path designer. Given a topic or skill, lay out a step-by-step learning path "
    "from fundamentals to advanced material. Split it into stages with goals, suggested resources, "
    "practice exercises and a rough time estimate for each stage."
)


def tutoring_prompt(subject: Optional[str] = None) -> str:
    return (
        f"You are an expert tutor specializing in {subject or 'various subjects'}. "
        "Provide clear, educational explanations. Break down complex concepts into simple steps. "
        "Ask questions to gauge understanding and provide examples. Be encouraging and patient."
    )


def select_system_prompt(support_type: Optional[SupportType], subject: Optional[str] = None) -> str:
    """Return the system prompt governing a conversation of the given support type.

    ``None`` stands for a support type the caller could not recognize and gets
    the general prompt, like every other value not listed here.
    """
    if support_type is SupportType.TUTORING:
        return tutoring_prompt(subject)
    elif support_type is SupportType.ASSIGNMENT:
        return ASSIGNMENT_PROMPT
    elif support_type is SupportType.RESEARCH_PAPER:
        return RESEARCH_PAPER_PROMPT
    elif support_type is SupportType.LEARNING_PATH:
        return LEARNING_PATH_PROMPT
    else:
        return GENERAL_PROMPT


# display copy used by the chat client
SUPPORT_TITLES = {
    SupportType.TUTORING: "AI Tutoring",
    SupportType.GENERAL: "General Support",
    SupportType.ASSIGNMENT: "Assignment Helper",
    SupportType.RESEARCH_PAPER: "Research Paper Generator",
    SupportType.LEARNING_PATH: "Learning Path Generator",
}

SUPPORT_PLACEHOLDERS = {
    SupportType.TUTORING: "Ask me to explain any concept or help you understand a topic...",
    SupportType.GENERAL: "Ask me about study tips, time management, or any academic question...",
    SupportType.ASSIGNMENT: "Describe your assignment and I'll guide you through it...",
    SupportType.RESEARCH_PAPER: "Tell me what research paper you want to generate...",
    SupportType.LEARNING_PATH: "What topic or skill would you like to learn?",
}
