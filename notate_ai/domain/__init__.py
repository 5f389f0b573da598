"""领域层模型与协议。

包含：
- models: ConversationTurn / OutboundRequest / ReplyOutcome 模型。
- conversation: 会话状态 ConversationState。
- exceptions: 业务异常类型与面向用户的错误提示。
"""
