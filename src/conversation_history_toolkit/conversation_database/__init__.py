from conversation_history_toolkit.conversation_database.identity import find_same_entity, same_entity
from conversation_history_toolkit.conversation_database.merge import merge_conversations

__all__ = ["find_same_entity", "merge_conversations", "same_entity"]
