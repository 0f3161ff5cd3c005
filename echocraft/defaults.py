"""Built-in providers and scenes shipped with echocraft."""

from __future__ import annotations

from .models import ModelConfig, Scene, Settings

DEFAULT_HOTKEY = "F9"

DEFAULT_MODELS = (
    ModelConfig(id="openai", name="OpenAI GPT"),
    ModelConfig(id="claude", name="Claude"),
    ModelConfig(id="wenxin", name="文心一言"),
    ModelConfig(id="tongyi", name="通义千问"),
)

DEFAULT_SCENES = (
    Scene(
        id="general",
        name="通用润色",
        prompt=(
            "请在充分保留原意的前提下，进行句法优化与措辞规范，去除口语与赘词，补全省略主语/谓语，"
            "合并重复信息，统一术语并提升逻辑连贯性。只输出润色后的规范书面语，不要添加额外解释或标注："
        ),
    ),
    Scene(
        id="product",
        name="产品需求（PRD）",
        prompt=(
            "请将以下口语化需求整理为 Markdown PRD，结构包含：\n"
            "- 背景与目标\n"
            "- 用户画像与用户故事\n"
            "- 需求范围（内/外）\n"
            "- 功能列表与交互要点\n"
            "- 非功能性需求（性能/安全/可用性等）\n"
            "- 验收标准（使用 Given-When-Then）\n"
            "- 里程碑与排期\n"
            "- 依赖、风险与假设\n"
            "仅输出 PRD 内容。"
        ),
    ),
    Scene(
        id="code",
        name="技术设计",
        prompt=(
            "请将以下技术讨论整理为清晰的技术设计文档（Markdown），包含：\n"
            "- 背景与问题定义（含非目标）\n"
            "- 架构方案（可用“架构图：占位”）\n"
            "- 模块/组件职责划分\n"
            "- 数据模型与存储设计\n"
            "- 关键流程与时序（步骤化描述）\n"
            "- 接口定义（入参/出参/错误码）\n"
            "- 方案权衡与取舍\n"
            "- 边界条件与异常处理\n"
            "- 风险、回退方案与测试计划\n"
            "仅输出文档内容。"
        ),
    ),
    Scene(
        id="report",
        name="工作汇报",
        prompt=(
            "请将以下内容整理为正式的周报/日报（Markdown），包含：\n"
            "- 本周完成（量化指标/影响）\n"
            "- 进行中（阻塞点/解决计划）\n"
            "- 下周计划（优先级与时间）\n"
            "- 风险/阻塞（需要协助）\n"
            "语言简洁准确，条目化呈现。"
        ),
    ),
    Scene(
        id="plan",
        name="计划制定",
        prompt=(
            "请将以下想法整理为可执行计划（Markdown），包含：\n"
            "- 目标与度量指标（SMART）\n"
            "- 任务拆解（优先级/依赖）\n"
            "- 时间排期（可用“甘特图：占位”）\n"
            "- 负责人与里程碑\n"
            "- 验收标准与交付物\n"
            "输出结构化清单与必要表格。"
        ),
    ),
    Scene(
        id="meeting",
        name="会议纪要",
        prompt=(
            "请整理为会议纪要（Markdown），包含：\n"
            "- 会议主题、时间、参会人\n"
            "- 讨论要点与结论决议\n"
            "- 行动项（负责人、截止时间、状态）\n"
            "- 待跟进问题与风险\n"
            "要求客观、可追踪。"
        ),
    ),
    Scene(
        id="email",
        name="邮件撰写",
        prompt=(
            "请将以下内容润色为专业邮件（中文），输出包含：\n"
            "- 主题建议（1-2 个）\n"
            "- 正式称呼与开场\n"
            "- 简洁正文（要点分段）\n"
            "- 明确的行动请求（如果适用）\n"
            "- 礼貌结尾与署名\n"
            "语气专业、清晰、礼貌。"
        ),
    ),
    Scene(
        id="summary",
        name="要点摘要",
        prompt="请对以下内容提炼要点摘要：输出 3-7 条关键点，涵盖问题/结论/建议；必要时给出下一步行动。仅输出要点列表。",
    ),
    Scene(
        id="bug",
        name="缺陷报告",
        prompt=(
            "请整理为缺陷报告（Markdown），包含：\n"
            "- 环境信息与版本\n"
            "- 前置条件\n"
            "- 复现步骤（编号）\n"
            "- 预期结果 vs 实际结果\n"
            "- 截图/日志：占位\n"
            "- 严重程度与优先级\n"
            "- 可能原因与修复建议\n"
            "仅输出报告内容。"
        ),
    ),
    Scene(
        id="marketing",
        name="营销文案（AIDA）",
        prompt=(
            "请将以下素材整理为营销文案，采用 AIDA 结构（注意-兴趣-欲望-行动），"
            "并提供 3 个标题备选与一个明确 CTA。语言有感染力、信息真实可核。"
        ),
    ),
    Scene(
        id="zh2en",
        name="中译英（专业、地道）",
        prompt=(
            "请将以下中文内容准确翻译为自然、地道的英文：\n"
            "- 保留原意与关键信息，不擅自添加或省略\n"
            "- 句法与措辞符合英文习惯，避免直译腔\n"
            "- 根据上下文选择专业术语（如有歧义，选更通用表达）\n"
            "- 保持语气客观、简洁、专业\n"
            "仅输出英文译文，不要包含任何解释或原文。"
        ),
    ),
    Scene(
        id="en2zh",
        name="英译中（准确、流畅）",
        prompt=(
            "请将以下英文内容准确翻译为中文：\n"
            "- 忠实表达原意，确保术语一致、名称准确\n"
            "- 采用地道、流畅的书面表达，避免生硬直译\n"
            "- 遇到专有名词保留英文并在中文后括注（首次出现时）\n"
            "- 适度调整语序提升可读性\n"
            "仅输出中文译文，不要包含任何解释或原文。"
        ),
    ),
    Scene(
        id="commit_en",
        name="英文提交信息（Conventional Commits）",
        prompt=(
            "Please write an English Git commit message following the Conventional Commits specification.\n"
            "\n"
            "Requirements:\n"
            "- Allowed types: feat, fix, refactor, perf, docs, style, test, chore, build, ci, revert\n"
            "- Subject: imperative mood, <= 50 chars, lowercase, no trailing period\n"
            "- Optional scope in parentheses after type (e.g., feat(ui): ...)\n"
            "- Body: explain what/why/how, wrap at ~72 chars per line, highlight impact and rationale\n"
            "- Footer: BREAKING CHANGE: ..., Closes #123, Co-authored-by: ... (when applicable)\n"
            '- Include a short "Test plan:" section listing verification steps\n'
            "\n"
            "Output strictly the commit message only, no extra explanations."
        ),
    ),
)

DEFAULT_SETTINGS = Settings(
    hotkey=DEFAULT_HOTKEY,
    selected_model="openai",
    selected_scene="general",
    models=DEFAULT_MODELS,
    scenes=DEFAULT_SCENES,
)

CUSTOM_SCENE_NAME = "自定义场景"
CUSTOM_SCENE_PROMPT = "请润色以下文字："
