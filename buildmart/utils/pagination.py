from flask import request

MAX_PAGE_SIZE = 100


def page_args(default_limit=20):
    """从查询参数读取 page / limit，limit 上限 100"""
    page = max(request.args.get('page', 1, type=int), 1)
    limit = request.args.get('limit', default_limit, type=int)
    return page, min(max(limit, 1), MAX_PAGE_SIZE)


def page_payload(pagination, key, **extra):
    """分页结果序列化"""
    payload = {
        'success': True,
        key: [item.to_dict() for item in pagination.items],
        'page': pagination.page,
        'pages': pagination.pages,
        'total': pagination.total
    }
    payload.update(extra)
    return payload
