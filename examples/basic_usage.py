"""Basic usage example for MetricResolver."""

from datetime import datetime, timedelta, timezone

from metricresolver import LinkContext, QueryPipeline


def main():
    """Resolve a small dashboard batch and print what the api client would get."""
    pipeline = QueryPipeline()

    batch = [
        # plain statistic lookup
        {
            "refId": "A",
            "queryType": "query",
            "editorMode": "builder",
            "namespace": "AWS/EC2",
            "metricName": "CPUUtilization",
            "statistic": "Average",
            "period": 300,
            "dimensions": {"InstanceId": "i-0123456789abcdef0"},
        },
        # math over A
        {"refId": "B", "queryType": "query", "expression": "A * 100", "label": "CPU x100"},
        # search - the api finds every instance
        {
            "refId": "C",
            "queryType": "search",
            "namespace": "AWS/EC2",
            "metricName": "NetworkIn",
            "dimensions": {"InstanceId": "*"},
        },
        # metrics insights sql
        {
            "refId": "D",
            "queryType": "query",
            "editorMode": "code",
            "expression": 'SELECT AVG(CPUUtilization) FROM SCHEMA("AWS/EC2", InstanceId)',
        },
        # broken on purpose - Z isn't in the batch
        {"refId": "E", "queryType": "query", "expression": "Z * 2"},
    ]

    end = datetime.now(timezone.utc)
    context = LinkContext(start=end - timedelta(hours=3), end=end, region="us-east-1")
    result = pipeline.run(batch, context)

    print("=" * 60)
    print("MetricResolver Demo")
    print("=" * 60)

    print("\n1. Modes:")
    for ref_id, mode in result.modes.items():
        print(f"   {ref_id}: {mode.value}")

    print("\n2. Evaluation order:")
    print(f"   {' -> '.join(result.order)}")

    print("\n3. Requests:")
    for ref_id in result.order:
        print(f"   {ref_id}: {result.requests[ref_id].to_api_params()}")

    print("\n4. Console links:")
    for ref_id in result.order:
        print(f"   {ref_id}: {pipeline.link_url(result.links[ref_id])}")

    print("\n5. Errors:")
    for message in result.error_messages():
        print(f"   {message}")


if __name__ == "__main__":
    main()
