from prometheus_client import Counter

users_registered_total = Counter(
    "blog_users_registered_total",
    "Total number of registered users"
)

posts_created_total = Counter(
    "blog_posts_created_total",
    "Total number of posts created"
)
