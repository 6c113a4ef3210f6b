from fastapi import Request


def get_client_ip(request: Request) -> str:
    """
    Requester IP: first x-forwarded-for hop when behind a proxy, else the socket peer
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is not None:
        return request.client.host
    return ""
