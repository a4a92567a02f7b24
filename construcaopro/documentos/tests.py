"""
Test suite for documentos module
Tests: upload, visibility by obra, download, metadata update, delete with file removal, categories
"""
import os
import shutil
import tempfile
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from construcaopro.core.models import AuditLog
from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.documentos.models import Documento, DocumentoCategoria

MEDIA_ROOT = tempfile.mkdtemp(prefix='construcaopro-test-media-')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class DocumentoAPITests(TestCase):
    """Test document endpoints"""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.almoxarife = TestDataFactory.create_user(role='ALMOXARIFE')
        self.obra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(self.almoxarife, self.obra)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.almoxarife)

    def _arquivo(self, nome='planta.pdf', conteudo=b'%PDF-1.4 teste', content_type='application/pdf'):
        return SimpleUploadedFile(nome, conteudo, content_type=content_type)

    def _upload(self, files=None, **extra):
        data = {'files': files or [self._arquivo()]}
        data.update(extra)
        return self.client.post('/api/v1/documentos/', data, format='multipart')

    def test_upload_multiple_files(self):
        categoria = DocumentoCategoria.objects.create(nome='Plantas')
        response = self._upload(files=[self._arquivo(), self._arquivo('memorial.txt', b'abc', 'text/plain')],
                                obra=self.obra.id, categoria=categoria.id, descricao='Projeto executivo')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 2)

        documento = Documento.objects.get(nome='memorial.txt')
        self.assertEqual(documento.tamanho, 3)
        self.assertEqual(documento.tipo_arquivo, 'text/plain')
        self.assertEqual(documento.enviado_por, self.almoxarife)
        self.assertEqual(documento.categoria, categoria)
        self.assertIn(f'documentos/{self.obra.id}/', documento.arquivo.name)
        self.assertEqual(AuditLog.objects.filter(acao='documento_upload').count(), 2)

    def test_upload_without_files(self):
        response = self.client.post('/api/v1/documentos/', {'descricao': 'vazio'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_visualizador_cannot_upload(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self._upload().status_code, status.HTTP_403_FORBIDDEN)

    def test_upload_to_unlinked_obra(self):
        outra = TestDataFactory.create_obra()
        self.assertEqual(self._upload(obra=outra.id).status_code, status.HTTP_403_FORBIDDEN)

    def test_visibility_follows_obra_access(self):
        self._upload(files=[self._arquivo('geral.pdf')])
        self._upload(files=[self._arquivo('obra.pdf')], obra=self.obra.id)

        outro = TestDataFactory.create_user(role='ALMOXARIFE')
        self.client.authenticate_user(outro)
        response = self.client.get('/api/v1/documentos/')
        self.assertEqual([d['nome'] for d in response.data], ['geral.pdf'])

        documento = Documento.objects.get(nome='obra.pdf')
        response = self.client.get(f'/api/v1/documentos/{documento.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_filters(self):
        categoria = DocumentoCategoria.objects.create(nome='Contratos')
        self._upload(files=[self._arquivo('contrato.pdf')], categoria=categoria.id)
        self._upload(files=[self._arquivo('foto.jpg', b'\xff\xd8', 'image/jpeg')], obra=self.obra.id)

        response = self.client.get(f'/api/v1/documentos/?categoria={categoria.id}')
        self.assertEqual([d['nome'] for d in response.data], ['contrato.pdf'])
        response = self.client.get(f'/api/v1/documentos/?obra={self.obra.id}')
        self.assertEqual([d['nome'] for d in response.data], ['foto.jpg'])
        response = self.client.get('/api/v1/documentos/?search=image')
        self.assertEqual([d['nome'] for d in response.data], ['foto.jpg'])

    def test_download(self):
        self._upload(files=[self._arquivo('orcamento.pdf', b'conteudo do arquivo')])
        documento = Documento.objects.get()
        response = self.client.get(f'/api/v1/documentos/{documento.id}/download/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment', response['Content-Disposition'])
        self.assertEqual(b''.join(response.streaming_content), b'conteudo do arquivo')
        response.close()

    def test_patch_metadata(self):
        self._upload()
        documento = Documento.objects.get()
        response = self.client.patch(f'/api/v1/documentos/{documento.id}/', {'nome': 'planta-v2.pdf'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['nome'], 'planta-v2.pdf')

    def test_delete_removes_file(self):
        self._upload()
        documento = Documento.objects.get()
        caminho = documento.arquivo.path
        self.assertTrue(os.path.exists(caminho))

        response = self.client.delete(f'/api/v1/documentos/{documento.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Documento.objects.exists())
        self.assertFalse(os.path.exists(caminho))

    def test_failed_upload_keeps_no_rows_or_files(self):
        arquivos = [self._arquivo('fundacao.pdf'), self._arquivo('cobertura.pdf')]
        with mock.patch('construcaopro.documentos.views._tipo_arquivo',
                        side_effect=['application/pdf', OSError('falha no disco')]):
            with self.assertRaises(OSError):
                self._upload(files=arquivos, obra=self.obra.id)

        self.assertFalse(Documento.objects.exists())
        self.assertFalse(AuditLog.objects.filter(acao='documento_upload').exists())
        armazenados = [nome for _, _, nomes in os.walk(MEDIA_ROOT) for nome in nomes]
        self.assertFalse([nome for nome in armazenados if nome.startswith(('fundacao', 'cobertura'))])

    def test_only_uploader_or_gestor_can_delete(self):
        self._upload()
        documento = Documento.objects.get()

        outro = TestDataFactory.create_user(role='ALMOXARIFE')
        self.client.authenticate_user(outro)
        response = self.client.delete(f'/api/v1/documentos/{documento.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_user(role='GESTOR'))
        response = self.client.delete(f'/api/v1/documentos/{documento.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class DocumentoCategoriaAPITests(TestCase):
    """Test document category endpoints"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def test_create_and_count(self):
        response = self.client.post('/api/v1/documento-categorias/', {'nome': 'Alvarás', 'cor': '#ff9500'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['cor'], '#FF9500')
        self.assertEqual(response.data['documentos_count'], 0)

        categoria = DocumentoCategoria.objects.get()
        Documento.objects.create(nome='alvara.pdf', arquivo='documentos/geral/alvara.pdf', tamanho=10,
                                 categoria=categoria)
        response = self.client.get('/api/v1/documento-categorias/')
        self.assertEqual(response.data[0]['documentos_count'], 1)

    def test_default_color_and_invalid_color(self):
        response = self.client.post('/api/v1/documento-categorias/', {'nome': 'Notas'}, format='json')
        self.assertEqual(response.data['cor'], '#007AFF')
        response = self.client.post('/api/v1/documento-categorias/', {'nome': 'Fotos', 'cor': 'azul'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_keeps_documents(self):
        categoria = DocumentoCategoria.objects.create(nome='Temporária')
        documento = Documento.objects.create(nome='x.pdf', arquivo='documentos/geral/x.pdf', tamanho=1,
                                             categoria=categoria)
        response = self.client.delete(f'/api/v1/documento-categorias/{categoria.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        documento.refresh_from_db()
        self.assertIsNone(documento.categoria)

    def test_almoxarife_cannot_manage(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='ALMOXARIFE'))
        response = self.client.post('/api/v1/documento-categorias/', {'nome': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
