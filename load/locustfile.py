import random

from locust import HttpUser, between, task

DOMAINS = ["api.example.com", "cdn.example.com", "auth.example.com", "files.example.com"]


class NetGuardUser(HttpUser):
    wait_time = between(0.2, 1.2)

    @task(6)
    def report_response(self):
        domain = random.choice(DOMAINS)
        self.client.post(
            "/api/v1/signals/response",
            json={
                "url": f"https://{domain}/resource/{random.randint(1, 500)}",
                "status": random.choice([200, 200, 200, 201, 304, 401, 404, 500]),
                "response_time_ms": random.uniform(20, 2500),
                "size_bytes": random.randint(100, 90_000),
            },
        )

    @task(3)
    def report_interaction(self):
        self.client.post("/api/v1/signals/click")
        if random.random() < 0.3:
            self.client.post("/api/v1/signals/navigation")

    @task(2)
    def predict(self):
        self.client.post(
            "/api/v1/detection/predict",
            json={
                "request_count": random.randint(5, 300),
                "failed_requests": random.randint(0, 60),
                "average_response_time": random.uniform(50, 2500),
                "total_data_transferred": random.uniform(100, 6000),
                "unique_domains": random.randint(1, 70),
                "http_errors": random.randint(0, 25),
                "suspicious_patterns": random.randint(0, 13),
                "memory_usage": random.uniform(20, 100),
                "cpu_usage": random.uniform(10, 100),
                "click_rate": random.uniform(1, 70),
                "navigation_rate": random.uniform(0.5, 30),
            },
        )

    @task(1)
    def monitoring(self):
        self.client.get("/api/v1/events?limit=20")
        self.client.get("/api/v1/events/summary")
        self.client.get("/api/v1/events/status")
