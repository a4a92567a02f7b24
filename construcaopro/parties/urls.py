from django.urls import path
from .views import fornecedor_list_create, fornecedor_detail

urlpatterns = [
    path('fornecedores/', fornecedor_list_create, name='fornecedor-list-create'),
    path('fornecedores/<int:pk>/', fornecedor_detail, name='fornecedor-detail'),
]
