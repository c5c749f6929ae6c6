from django.db import DatabaseError, connections
from django.http import JsonResponse

from core.gateway import get_gateway


def healthz(request):
    store = get_gateway().store
    store_info = {'mode': store.name}
    if store.enabled:
        store_info['ping'] = store.ping()
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1), 'store': store_info})
    except DatabaseError as e:
        return JsonResponse({'ok': False, 'error': str(e), 'store': store_info}, status=500)
