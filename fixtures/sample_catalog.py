"""
Sample affiliate catalog, automation rules and page content for testing.
Catalog rows and rules use the camelCase wire names of the external JSON.
"""

HIGH_INTENT_PAGE = {
    "url": "https://blog.example.com/best-budget-headphones",
    "title": "Best budget wireless headphones review: compare top deals",
    "content": (
        "We tested a dozen pairs of wireless headphones this spring. "
        "If you want to buy on a budget, these are the best deals right now. "
        "Read our review and compare prices before you purchase."
    ),
}

LOW_INTENT_PAGE = {
    "url": "https://blog.example.com/spring-garden",
    "title": "Notes from the spring garden",
    "content": (
        "The tulips came up early this year. We spent the weekend planting "
        "tomatoes and watching the birds return to the garden."
    ),
}

SAMPLE_HTML = """
<html>
  <head>
    <title>Headphone guide</title>
    <style>body { color: red; }</style>
    <script>var tracking = "buy buy buy";</script>
  </head>
  <body>
    <h1>Best budget wireless headphones</h1>
    <p>Read our review and compare the top deals.</p>
    <noscript>Enable JavaScript</noscript>
  </body>
</html>
"""

SAMPLE_CATALOG = [
    {
        "id": "p-sony",
        "name": "Sony WH-CH720N Wireless Headphones",
        "description": "Budget noise cancelling wireless headphones",
        "category": "Electronics > Technology",
        "price": 99.99,
        "commissionRate": 4,
        "affiliateUrl": "https://shop.example.com/sony-wh-ch720n?ref=aff",
    },
    {
        "id": "p-jbl",
        "name": "JBL Tune 510BT",
        "description": "On-ear wireless headphones review favorite",
        "category": "technology audio",
        "price": 39.99,
        "commissionRate": 3,
        "affiliateUrl": "https://shop.example.com/jbl-tune-510bt",
    },
    {
        "id": "p-anker",
        "name": "Anker Soundcore Q30 Headphones",
        "description": "Affordable wireless headphones with long battery",
        "category": "technology",
        "price": 59.99,
        "commissionRate": 5,
        "affiliateUrl": "https://shop.example.com/anker-q30",
    },
    {
        "id": "p-laptop",
        "name": "Budget Laptop 14",
        "description": "Affordable laptop for students",
        "category": "technology",
        "price": 399.0,
        "commissionRate": 2,
        "affiliateUrl": "https://shop.example.com/laptop-14",
    },
    {
        "id": "p-garden",
        "name": "Expandable Garden Hose",
        "description": "Lightweight hose for the garden",
        "category": "home garden",
        "price": 29.99,
        "commissionRate": 8,
        "affiliateUrl": "https://shop.example.com/garden-hose",
    },
    # Ineligible: no price, no commission, no affiliate URL
    {
        "id": "p-free",
        "name": "Free Sample Wireless Headphones",
        "description": "Budget wireless headphones review best deals",
        "category": "technology",
        "price": 0,
        "commissionRate": 50,
        "affiliateUrl": "https://shop.example.com/free",
    },
    {
        "id": "p-nocommission",
        "name": "Generic Wireless Headphones",
        "description": "Budget wireless headphones review best deals",
        "category": "technology",
        "price": 19.99,
        "commissionRate": 0,
        "affiliateUrl": "https://shop.example.com/generic",
    },
    {
        "id": "p-nolink",
        "name": "Bose QuietComfort Headphones",
        "description": "Budget wireless headphones review best deals",
        "category": "technology",
        "price": 249.0,
        "commissionRate": 6,
    },
]

SAMPLE_RULES = [
    {
        "id": "rule-tech",
        "name": "Tech headphones",
        "userId": "user-1",
        "isActive": True,
        "conditions": {
            "keywords": ["Headphones"],
            "minBuyingIntent": 0.5,
            "categories": ["technology"],
        },
        "actions": {
            "autoCreateLinks": True,
            "autoCreatePopups": False,
            "notifyUser": True,
        },
    },
    {
        "id": "rule-high-commission",
        "name": "High commission only",
        "userId": "user-1",
        "conditions": {"minCommission": 10},
        "actions": {"autoCreatePopups": True},
    },
    {
        "id": "rule-paused",
        "name": "Paused rule",
        "userId": "user-1",
        "isActive": False,
        "conditions": {},
        "actions": {"notifyUser": True},
    },
]
