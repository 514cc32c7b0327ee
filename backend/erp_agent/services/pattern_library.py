"""
PATTERN LIBRARY

Ordered rule tables used by the text extractor. Every cascade is data:
a rule is (pattern, field, priority, value) and rules are tried in
ascending priority. Priorities are unique within a table, so the first
accepted match is deterministic.

Tables:
- ORDER_TYPE_RULES   PURCHASE rules first, then SALE (no match -> caller default)
- CUSTOMER_RULES     naming patterns, capture group 1 is the name
- PRODUCT_RULES      known-noun groups, then generic shapes
- QUANTITY_RULES     templates around the product name ({p}), then generic
- PRICE_RULES        per-unit / bare / labeled price forms
- ACTION_RULES       sentence -> ActionType for the fallback parser
- ORDER_ID_RULES, FREIGHT_RULES, TIME_RANGE_RULES, LIMIT_RULES, KEYWORD_RULES
"""
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Pattern, Tuple

from erp_ai.intent_schema import ActionType, OrderType


@dataclass(frozen=True)
class Rule:
    pattern: Pattern
    field: str
    priority: int
    value: Optional[str] = None  # constant result; None means "use capture group 1"


def build_rules(field: str, patterns: Iterable, start: int = 10, step: int = 10) -> List[Rule]:
    """Compile ``patterns`` into rules with increasing priority.

    Each entry is either a regex string or a (regex, value) pair.
    """
    rules = []
    for i, entry in enumerate(patterns):
        regex, value = entry if isinstance(entry, tuple) else (entry, None)
        rules.append(Rule(re.compile(regex), field, start + i * step, value))
    return rules


def first_match(
    rules: Iterable[Rule],
    text: str,
    accept: Optional[Callable[[str], bool]] = None,
) -> Optional[Tuple[Rule, str]]:
    """First rule (by priority) whose first match is accepted.

    Returns (rule, captured) where captured is group 1 if the pattern has one,
    else the whole match. A rejected capture falls through to the next rule.
    """
    for rule in sorted(rules, key=lambda r: r.priority):
        m = rule.pattern.search(text)
        if not m:
            continue
        captured = m.group(1) if m.re.groups else m.group(0)
        captured = (captured or "").strip()
        if accept is None or accept(captured):
            return rule, captured
    return None


# ---------------------------------------------------------------------------
# Character classes
# ---------------------------------------------------------------------------

NAME = r"[\u4e00-\u9fa5a-zA-Z]+"
HAN = r"[\u4e00-\u9fa5]"
NUMBER = r"\d+(?:\.\d+)?"

COUNT_UNITS = ["个", "瓶", "件", "只", "袋", "箱", "斤", "公斤"]
PRICE_UNITS = ["瓶", "个", "件", "只", "袋", "斤"]
ANY_COUNT_UNIT = "(?:" + "|".join(COUNT_UNITS) + ")"


# ---------------------------------------------------------------------------
# Order type
# ---------------------------------------------------------------------------

PURCHASE_KEYWORDS = [
    "采购", "进货", "购买", "进料", "补货", "订购", "进仓", "入库",
    "从供应商", "向厂家", "向供应商", "从厂家", "供应商", "厂家",
    "批发", "进购", "采买", "购进", "收货", "进材料", "买材料",
]

SALE_KEYWORDS = [
    "销售", "出售", "卖给", "售给", "发货", "交付", "为客户", "给客户",
    "销", "卖", "售", "出货", "零售", "批售", "卖出", "客户订单",
    "销售订单", "出库", "发给",
]

# "从哈振宇那里买了…", "向厂家进…": buying from a named party
_FROM_PARTY_BUY = r"(?:从|向)\s*" + NAME + r"?\s*(?:那里|这里|处)?\s*(?:买|购|进|订)"

ORDER_TYPE_RULES = (
    build_rules("order_type", [(re.escape(k), OrderType.PURCHASE.value) for k in PURCHASE_KEYWORDS], start=10)
    + build_rules("order_type", [(_FROM_PARTY_BUY, OrderType.PURCHASE.value)], start=500)
    + build_rules("order_type", [(re.escape(k), OrderType.SALE.value) for k in SALE_KEYWORDS], start=1000)
)


# ---------------------------------------------------------------------------
# Customer / supplier
# ---------------------------------------------------------------------------

CUSTOMER_RULES = build_rules("customer", [
    # creation
    r"为\s*(" + NAME + r")\s*创建",
    r"给\s*(" + NAME + r")\s*创建",
    r"帮\s*(" + NAME + r")\s*创建",
    r"为\s*(" + NAME + r")\s*下",
    r"给\s*(" + NAME + r")\s*下",
    r"帮\s*(" + NAME + r")\s*买",
    # source
    r"从\s*(" + NAME + r")\s*那里",
    r"从\s*(" + NAME + r")\s*这里",
    r"从\s*(" + NAME + r")\s*处",
    r"从\s*(" + NAME + r")\s*买",
    r"从\s*(" + NAME + r")\s*购买",
    r"从\s*(" + NAME + r")\s*进",
    r"向\s*(" + NAME + r")\s*买",
    r"向\s*(" + NAME + r")\s*购买",
    # destination
    r"卖给\s*(" + NAME + r")",
    r"售给\s*(" + NAME + r")",
    r"发给\s*(" + NAME + r")",
    r"交付给\s*(" + NAME + r")",
    r"出售给\s*(" + NAME + r")",
    # labeled
    r"客户[:：]?\s*(" + NAME + r")",
    r"供应商[:：]?\s*(" + NAME + r")",
    # loose
    r"(" + NAME + r")\s*的订单",
    r"(" + NAME + r")\s*要",
    r"(" + NAME + r")\s*订购",
    r"(" + NAME + r")\s*说",
    r"(" + NAME + r")\s*需要",
    r"(" + NAME + r")\s*想要",
    r"和\s*(" + NAME + r")",
    r"跟\s*(" + NAME + r")",
])

INVALID_CUSTOMER_NAMES = frozenset([
    # actions
    "创建", "订单", "下单", "购买", "买", "卖", "销售", "查询", "删除",
    # products
    "商品", "苹果", "橙子", "香蕉", "梨子", "葡萄", "西瓜", "草莓", "芒果", "桃子", "樱桃",
    "大米", "面粉", "面条", "馒头", "包子", "饺子", "汤圆", "水", "饮料", "牛奶",
    "鸡蛋", "鱼", "肉", "鸡", "鸭", "猪肉", "牛肉", "羊肉",
    "青菜", "白菜", "萝卜", "土豆", "西红柿", "黄瓜", "茄子",
    # units
    "数量", "单价", "价格", "元", "块", "钱", "个", "件", "只", "瓶", "袋", "箱", "斤", "公斤",
    # system words
    "客户", "供应商", "那里", "这里", "地方", "处",
])


def is_valid_customer_name(name: str) -> bool:
    if not name or not name.strip():
        return False
    name = name.strip()
    if name.lower() in INVALID_CUSTOMER_NAMES:
        return False
    return not name.isdigit()


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------

PRODUCT_GROUPS = [
    # beverages
    ["水", "饮用水", "矿泉水", "纯净水", "饮料", "可乐", "雪碧", "果汁", "茶", "咖啡", "奶茶", "豆浆"],
    # fruits
    ["苹果", "橙子", "香蕉", "梨子", "葡萄", "西瓜", "草莓", "芒果", "桃子", "樱桃",
     "柠檬", "橘子", "柚子", "猕猴桃", "火龙果", "榴莲"],
    # staples
    ["大米", "面粉", "面条", "馒头", "包子", "饺子", "汤圆", "米饭", "面包", "饼干",
     "蛋糕", "粥", "粉条", "河粉", "方便面"],
    # dairy
    ["鸡蛋", "牛奶", "酸奶", "奶酪", "黄油", "奶粉", "豆奶", "乳制品"],
    # meat
    ["鱼", "肉", "鸡", "鸭", "猪肉", "牛肉", "羊肉", "火腿", "香肠", "腊肉", "培根",
     "鸡翅", "鸡腿", "排骨"],
    # vegetables
    ["青菜", "白菜", "萝卜", "土豆", "西红柿", "黄瓜", "茄子", "豆角", "辣椒", "洋葱",
     "蒜", "姜", "韭菜", "菠菜", "芹菜"],
    # household
    ["纸巾", "卫生纸", "洗发水", "沐浴露", "牙膏", "牙刷", "毛巾", "香皂", "洗衣粉", "洗洁精"],
]

GENERIC_PRODUCT_PRIORITY = 900

PRODUCT_RULES = (
    build_rules("product", ["(" + "|".join(group) + ")" for group in PRODUCT_GROUPS])
    + build_rules("product", [
        "(" + HAN + r"{1,4}(?:商品|产品|货物|物品|用品))",
        "(" + HAN + r"{2,6})",
    ], start=GENERIC_PRODUCT_PRIORITY)
)

INVALID_PRODUCT_NAMES = frozenset([
    "创建", "订单", "查询", "删除", "买", "卖", "购买", "销售", "客户", "供应商",
    "数量", "单价", "价格", "元", "块", "钱", "个", "件", "只", "瓶", "袋", "箱", "斤", "公斤",
    "那里", "这里", "处",
])

# Generic shapes must not swallow command words or unit/price phrasing ("每瓶", "为张三创建")
_GENERIC_PRODUCT_NOISE = re.compile(
    r"创建|订单|查询|删除|买|卖|销|售|采购|进货|客户|供应商|数量|单价|价格|元|块|钱|"
    r"个|件|只|瓶|袋|箱|斤|那里|这里|处|为|给|从|向|和|跟|每|一|分析|统计|确认|库存"
)


def is_valid_product_name(name: str, generic: bool = False) -> bool:
    if not name or not name.strip():
        return False
    name = name.strip()
    if len(name) > 10 or name.isdigit():
        return False
    if name in INVALID_PRODUCT_NAMES:
        return False
    if generic and _GENERIC_PRODUCT_NOISE.search(name):
        return False
    return True


# ---------------------------------------------------------------------------
# Quantity ({p} is the escaped product name)
# ---------------------------------------------------------------------------

QUANTITY_TEMPLATES_WITH_PRODUCT = (
    [r"(\d+)\s*" + unit + r"\s*{p}" for unit in COUNT_UNITS]
    + [r"{p}\s*(\d+)\s*" + unit for unit in ("个", "瓶", "件")]
    + [
        r"(\d+)\s*{p}",
        r"{p}\s*(\d+)",
        r"买\s*(\d+)\s*{p}",
        r"要\s*(\d+)\s*{p}",
        r"需要\s*(\d+)\s*{p}",
    ]
)

QUANTITY_GENERIC = [
    r"数量\s*[:：]?\s*(\d+)",
    r"(\d+)\s*" + ANY_COUNT_UNIT,
]


def quantity_rules(product_name: str) -> List[Rule]:
    """Quantity cascade for a given product; generic rules only when the name is empty."""
    patterns = []
    if product_name:
        escaped = re.escape(product_name)
        patterns.extend(t.replace("{p}", escaped) for t in QUANTITY_TEMPLATES_WITH_PRODUCT)
    patterns.extend(QUANTITY_GENERIC)
    return build_rules("quantity", patterns)


# ---------------------------------------------------------------------------
# Unit price
# ---------------------------------------------------------------------------

PRICE_RULES = build_rules("unit_price", (
    [r"一\s*" + unit + r"\s*(" + NUMBER + r")\s*元" for unit in PRICE_UNITS]
    + [r"每\s*" + unit + r"\s*(" + NUMBER + r")\s*(?:元|块)" for unit in PRICE_UNITS]
    + [
        r"(" + NUMBER + r")\s*元\s*一",
        r"(" + NUMBER + r")\s*块\s*一",
        r"(" + NUMBER + r")\s*钱\s*一",
        r"(" + NUMBER + r")\s*元",
        r"(" + NUMBER + r")\s*块",
        r"(" + NUMBER + r")\s*钱",
        r"单价\s*[:：]?\s*(" + NUMBER + r")",
        r"价格\s*[:：]?\s*(" + NUMBER + r")",
        r"(" + NUMBER + r")\s*(?:元|块|钱|￥|¥)",
        r"[￥¥]\s*(" + NUMBER + r")",
    ]
))


# ---------------------------------------------------------------------------
# Action (fallback parser)
# ---------------------------------------------------------------------------

ACTION_RULES = build_rules("action", [
    (r"删除|删掉|取消订单|作废", ActionType.DELETE_ORDER.value),
    (r"确认\s*(?:订单|ID|id|\d)", ActionType.CONFIRM_ORDER.value),
    (r"(?:分析|统计|报告).*(?:财务|利润|盈利|成本|收支)|(?:财务|利润|盈利|收支).*(?:分析|状况|情况|报告)",
     ActionType.ANALYZE_FINANCE.value),
    (r"(?:分析|统计).*(?:订单|这些)|订单.*(?:分析|统计)", ActionType.ANALYZE_ORDER.value),
    (r"库存|存货|还剩多少|还有多少", ActionType.QUERY_INVENTORY.value),
    (r"销售额|销售数据|营业额|销量|销售统计|销售情况|卖了多少", ActionType.QUERY_SALES.value),
    (r"查询|查看|查找|查一下|看看|列出|查", ActionType.QUERY_ORDER.value),
    (r"创建|下单|新建|添加|开单|买|卖|售|采购|进货|订购|发货|补货|单价|价格|元|块钱",
     ActionType.CREATE_ORDER.value),
])


# ---------------------------------------------------------------------------
# Scalar fields
# ---------------------------------------------------------------------------

ORDER_ID_RULES = build_rules("order_id", [
    r"订单\s*(?:ID|id|号|编号)?\s*[:：#为是]?\s*(\d+)",
    r"(?:ID|id)\s*(?:为|是|=|:|：)?\s*(\d+)",
    r"(?:删除|确认|取消)\s*(?:第)?\s*(\d+)",
    r"(\d+)\s*号订单",
])

FREIGHT_RULES = build_rules("freight", [
    (r"(?:免|无|不要|没有)运费", "0"),
    r"运费\s*[:：]?\s*(" + NUMBER + r")",
    r"(" + NUMBER + r")\s*(?:元|块)?\s*运费",
])

TIME_RANGE_RULES = build_rules("time_range", [
    r"(今天|今日|昨天|本周|这周|上周|本月|这个月|上个月|上月|本季度|今年|本年|去年|全部)",
    r"((?:最近|近)\s*\d+\s*(?:天|周|个月))",
])

LIMIT_RULES = build_rules("limit", [
    r"(?:最近|前)\s*(\d+)\s*(?:个|条|笔)",
])

# "查询订单SO2026031800001", "查询王五的订单", "查询客户张三的订单", "查看李四的销售"
KEYWORD_RULES = build_rules("keyword", [
    r"(?:订单号|单号|订单)\s*[:：#]?\s*((?:SO|PO|so|po)\d+)",
    r"(?:查询|查看|查找|查|分析|统计)\s*(?:客户|供应商)?\s*[:：]?\s*(" + NAME + r"?)\s*的\s*(?:订单|销售|采购|数据)",
    r"(?:客户|供应商)\s*[:：]?\s*(" + NAME + r"?)\s*的",
    r"(?:订单号|单号)\s*[:：]?\s*([A-Za-z]*\d+)",
])
