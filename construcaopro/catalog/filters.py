import django_filters
from django.db.models import Q
from .models import Material


class MaterialFilter(django_filters.FilterSet):
    """Filters for the material list: free text search and category"""
    search = django_filters.CharFilter(method='filter_search')
    categoria = django_filters.NumberFilter(field_name='categoria_id')

    class Meta:
        model = Material
        fields = ['search', 'categoria']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(nome__icontains=value) |
            Q(codigo__icontains=value) |
            Q(codigo_barras__icontains=value) |
            Q(descricao__icontains=value)
        )
