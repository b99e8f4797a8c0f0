from enum import Enum

class StrategyCategory(str, Enum):
    """Upsell categories a strategy can belong to"""
    ROOM_UPGRADE = "room_upgrade"
    SERVICE_ADDON = "service_addon"
    DINING = "dining"
    SPA = "spa"
    ACTIVITIES = "activities"
    TRANSPORTATION = "transportation"
    PACKAGE = "package"

class ConditionType(str, Enum):
    """Runtime attributes a strategy condition can test"""
    BOOKING_VALUE = "booking_value"
    ROOM_TYPE = "room_type"
    GUEST_TYPE = "guest_type"
    LOYALTY_TIER = "loyalty_tier"
    LENGTH_OF_STAY = "length_of_stay"
    PARTY_SIZE = "party_size"
    LEAD_TIME = "lead_time"
    SEASON = "season"
    DAY_OF_WEEK = "day_of_week"

class Operator(str, Enum):
    """Known comparison operators (anything else evaluates to False)"""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    BETWEEN = "between"
    CONTAINS = "contains"

class TriggerEventType(str, Enum):
    """Guest journey events that can fire a trigger"""
    BOOKING_CREATED = "booking_created"
    PRE_ARRIVAL = "pre_arrival"
    CHECK_IN = "check_in"
    DURING_STAY = "during_stay"
    CHECK_OUT = "check_out"
    POST_STAY = "post_stay"
    BROWSE_START = "browse_start"
    CART_ABANDONMENT = "cart_abandonment"

class TimeUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

class ChannelType(str, Enum):
    """Delivery channels"""
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WEB = "web"
    MOBILE_APP = "mobile_app"
    VOICE = "voice"
    CHATBOT = "chatbot"

class DeviceType(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"

class DisplayType(str, Enum):
    POPUP = "popup"
    BANNER = "banner"
    INLINE = "inline"
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"

class SegmentDimension(str, Enum):
    """Attribute families a segment criterion can look at"""
    DEMOGRAPHICS = "demographics"
    BEHAVIOR = "behavior"
    PREFERENCES = "preferences"
    VALUE = "value"
    LOYALTY = "loyalty"

class LoyaltyTier(str, Enum):
    STANDARD = "standard"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"

class UrgencyType(str, Enum):
    TIME = "time"
    QUANTITY = "quantity"
    DEMAND = "demand"

class InteractionType(str, Enum):
    VIEW = "view"
    CLICK = "click"
    SHARE = "share"
    SAVE = "save"

class OfferResponse(str, Enum):
    CONVERTED = "converted"
    DISMISSED = "dismissed"
    IGNORED = "ignored"

class NextActionType(str, Enum):
    """Follow-up actions handed to the delivery layer"""
    FOLLOW_UP = "follow_up"
    RETARGET = "retarget"
    EXCLUDE = "exclude"
    ESCALATE = "escalate"
