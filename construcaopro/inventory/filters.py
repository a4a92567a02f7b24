import django_filters
from django.db.models import Q
from .models import Estoque, Movimentacao


class EstoqueFilter(django_filters.FilterSet):
    obra = django_filters.NumberFilter(field_name='almoxarifado__obra_id')
    almoxarifado = django_filters.NumberFilter(field_name='almoxarifado_id')
    material = django_filters.NumberFilter(field_name='material_id')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Estoque
        fields = ['obra', 'almoxarifado', 'material', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(material__nome__icontains=value) |
            Q(material__codigo__icontains=value) |
            Q(almoxarifado__nome__icontains=value)
        )


class MovimentacaoFilter(django_filters.FilterSet):
    """Movement filters; obra and almoxarifado match origin or destination"""
    tipo = django_filters.ChoiceFilter(choices=Movimentacao.TIPO_CHOICES)
    status = django_filters.ChoiceFilter(field_name='status_transferencia', choices=Movimentacao.STATUS_TRANSFERENCIA_CHOICES)
    obra = django_filters.NumberFilter(method='filter_obra')
    almoxarifado = django_filters.NumberFilter(method='filter_almoxarifado')
    material = django_filters.NumberFilter(field_name='material_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Movimentacao
        fields = ['tipo', 'status', 'obra', 'almoxarifado', 'material', 'date_from', 'date_to']

    def filter_obra(self, queryset, name, value):
        return queryset.filter(Q(almoxarifado__obra_id=value) | Q(almoxarifado_destino__obra_id=value))

    def filter_almoxarifado(self, queryset, name, value):
        return queryset.filter(Q(almoxarifado_id=value) | Q(almoxarifado_destino_id=value))
