"""Flask CLI commands."""

from buildmart.models import User, Distributor, Order


class TestAccountCommands:

    def test_create_admin(self, app, db):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-admin', '--email', 'Boss@BuildMart.in', '--password', 'secret123'])

        assert result.exit_code == 0
        admin = User.query.filter_by(email='boss@buildmart.in').one()
        assert admin.is_admin
        assert admin.verify_password('secret123')

    def test_create_admin_short_password(self, app, db):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-admin', '--email', 'boss@buildmart.in', '--password', '123'])

        assert result.exit_code != 0
        assert User.query.count() == 0

    def test_create_distributor_pending(self, app, db):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-distributor', '--email', 'yard@buildmart.in', '--business-name', 'Yard Supplies',
            '--password', 'secret123', '--pending'
        ])

        assert result.exit_code == 0
        distributor = Distributor.query.filter_by(email='yard@buildmart.in').one()
        assert distributor.is_approved is False

    def test_reset_admin_password(self, app, admin):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['reset-admin-password', '--email', admin.email, '--password', 'newsecret'])

        assert result.exit_code == 0
        assert admin.verify_password('newsecret')

    def test_reset_password_ignores_buyers(self, app, buyer):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['reset-admin-password', '--email', buyer.email, '--password', 'newsecret'])

        assert '未找到管理员' in result.output
        assert buyer.verify_password('secret123')


class TestSeedCommands:

    def test_forge_and_status(self, app, db):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['forge'])

        assert result.exit_code == 0, result.output
        assert User.query.filter_by(role=User.ROLE_ADMIN).count() == 1
        for order in Order.query.all():
            order.check_totals()

        result = runner.invoke(args=['status'])
        assert result.exit_code == 0
        assert '数据库连接正常' in result.output
