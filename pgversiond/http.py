"""Sending HTTP responses to a client."""


def send_all(client, content) -> int:
    """Send all of content over the client's TLS or plain channel; return bytes sent."""
    data = memoryview(content.encode("utf-8") if isinstance(content, str) else content)
    channel = client.ssl if client.is_https else client.sock
    total = 0
    while total < len(data):
        try:
            sent = channel.send(data[total:])
        except OSError:
            break
        if sent <= 0:
            break
        total += sent
    return total