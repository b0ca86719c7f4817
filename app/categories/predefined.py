PREDEFINED_CATEGORIES = [
    {"name": "Food & Dining", "slug": "food", "color": "#ef4444"},
    {"name": "Transport", "slug": "transport", "color": "#3b82f6"},
    {"name": "Housing & Utilities", "slug": "housing", "color": "#10b981"},
    {"name": "Clothing & Shopping", "slug": "shopping", "color": "#f59e0b"},
    {"name": "Entertainment", "slug": "entertainment", "color": "#8b5cf6"},
    {"name": "Healthcare", "slug": "healthcare", "color": "#ec4899"},
    {"name": "Education", "slug": "education", "color": "#06b6d4"},
    {"name": "Investment & Savings", "slug": "investment", "color": "#059669"},
    {"name": "Others", "slug": "others", "color": "#6b7280"},
]
