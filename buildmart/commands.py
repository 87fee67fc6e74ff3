import click
import random
from datetime import datetime, timedelta
from flask.cli import with_appcontext
from buildmart.extensions import db
from buildmart.exceptions import BuildMartException
from buildmart.models.auth import User, Distributor
from buildmart.models.catalog import Product
from buildmart.models.coupon import Coupon
from buildmart.models.stock import InventoryLog
from buildmart.models.trade import Order
from buildmart.utils.fake_gen import fake


@click.command('status')
@with_appcontext
def status():
    """
    [验证指令] 查看当前数据库中的数据统计。
    """
    click.echo(click.style('📊 BuildMart 数据库状态:', fg='cyan', bold=True))

    try:
        click.echo(f" - 用户 (Users): \t\t{User.query.count()}")
        click.echo(f" - 经销商 (Distributors): \t{Distributor.query.count()}")
        click.echo(f" - 商品 (Products): \t\t{Product.query.count()}")
        click.echo(f" - 优惠券 (Coupons): \t\t{Coupon.query.count()}")
        click.echo(f" - 订单 (Orders): \t\t{Order.query.count()}")
        click.echo(f" - 库存流水 (Logs): \t\t{InventoryLog.query.count()}")

        if User.query.count() > 0:
            click.echo(click.style('✔ 数据库连接正常，数据已存在。', fg='green'))
        else:
            click.echo(click.style('⚠ 数据库为空，请运行 flask forge 生成数据。', fg='yellow'))

    except Exception as e:
        click.echo(click.style(f'✘ 数据库读取失败: {str(e)}', fg='red'))
        click.echo("请检查是否执行了 'flask db upgrade'")


@click.command('forge')
@click.option('--scale', default=1, help='数据规模倍数 (默认1倍)')
@with_appcontext
def forge(scale):
    """
    [演示数据] 重建数据库并填充经销商、商品、优惠券和订单。
    警告：这将清除数据库中的现有数据！
    """
    click.echo(click.style(f'⚡ 初始化 BuildMart 演示数据 (规模: {scale}x)...', fg='cyan', bold=True))

    db.drop_all()
    db.create_all()

    click.echo('正在创建账号...')
    users, distributors = init_accounts(scale)

    click.echo('正在上架商品...')
    products = init_catalog(distributors, scale)

    click.echo('正在发放优惠券...')
    init_coupons()

    click.echo('正在模拟历史订单...')
    created = init_orders(users, distributors, products, scale)

    click.echo(click.style('✔ BuildMart 演示数据构建完成！', fg='green', bold=True))
    click.echo("管理员账号: admin@buildmart.in / 密码: admin123")
    click.echo(f"数据统计: {len(users)}买家, {len(distributors)}经销商, {len(products)}商品, {created}订单")


def init_accounts(scale=1):
    admin = User(name='BuildMart Admin', email='admin@buildmart.in', role=User.ROLE_ADMIN)
    admin.password = 'admin123'
    db.session.add(admin)

    users = []
    for i in range(10 * scale):
        user = User(name=fake.name(), email=f'buyer{i + 1}@buildmart.in', phone=fake.indian_mobile())
        user.password = 'password'
        users.append(user)

    distributors = []
    for i in range(3 * scale):
        city, state = fake.city_and_state()
        distributor = Distributor(
            business_name=fake.distributor_business(),
            owner_name=fake.name(),
            email=f'distributor{i + 1}@buildmart.in',
            phone=fake.indian_mobile(),
            city=city,
            state=state,
            pincode=fake.indian_pincode(),
            is_approved=True
        )
        distributor.password = 'password'
        distributors.append(distributor)

    db.session.add_all(users + distributors)
    db.session.commit()
    return users, distributors


def init_catalog(distributors, scale=1):
    products = []
    for distributor in distributors:
        for _ in range(8):
            name, category, unit, price = fake.building_product()
            products.append(Product(
                name=name,
                description=fake.sentence(nb_words=12),
                category=category,
                unit=unit,
                price=price,
                stock=random.randint(50, 500) * scale,
                distributor_id=distributor.id
            ))
    db.session.add_all(products)
    db.session.commit()
    return products


def init_coupons():
    expiry = datetime.utcnow() + timedelta(days=90)
    db.session.add_all([
        Coupon(code='WELCOME10', discount_type=Coupon.TYPE_PERCENTAGE, discount_value=10,
               min_purchase=500, max_discount=200, expiry_date=expiry),
        Coupon(code='FLAT250', discount_type=Coupon.TYPE_FIXED, discount_value=250,
               min_purchase=3000, expiry_date=expiry),
    ])
    db.session.commit()


def init_orders(users, distributors, products, scale=1):
    """通过订单引擎下单并推进状态，保证演示数据满足金额和库存约束"""
    from buildmart.services.order_service import OrderService

    by_distributor = {}
    for product in products:
        by_distributor.setdefault(product.distributor_id, []).append(product)

    created = 0
    for _ in range(20 * scale):
        user = random.choice(users)
        distributor = random.choice(distributors)
        picks = random.sample(by_distributor[distributor.id], k=random.randint(1, 3))
        try:
            order = OrderService.create_order(
                user=user,
                distributor_id=distributor.id,
                shipping_address=fake.shipping_address(full_name=user.name),
                payment_method=random.choice(Order.PAYMENT_METHODS),
                items_data=[{'product_id': p.id, 'quantity': random.randint(1, 5)} for p in picks],
                coupon_code=random.choice([None, None, 'WELCOME10'])
            )
        except BuildMartException as e:
            click.echo(click.style(f'  ⚠ 跳过一笔订单: {e.message}', fg='yellow'))
            continue
        created += 1

        # 随机推进：审核、发货、送达或驳回
        fate = random.random()
        if fate < 0.15:
            OrderService.reject(order.id, distributor, 'Out of stock at warehouse')
        elif fate < 0.85:
            OrderService.approve(order.id, distributor)
            target = random.choice(Order.STATUS_FLOW[2:])
            OrderService.update_status(order.id, target, distributor)
    return created


def _prompt_password(password):
    if not password:
        password = click.prompt('Password', hide_input=True, confirmation_prompt=True)
    if len(password) < 6:
        raise click.BadParameter('Password must be at least 6 characters')
    return password


@click.command('create-admin')
@click.option('--email', prompt=True, help='管理员邮箱')
@click.option('--name', default='Administrator', help='显示名称')
@click.option('--password', default=None, help='密码 (不传则交互输入)')
@with_appcontext
def create_admin(email, name, password):
    """创建管理员账号"""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo(click.style(f'✘ 邮箱 {email} 已存在', fg='red'))
        return
    admin = User(name=name, email=email, role=User.ROLE_ADMIN)
    admin.password = _prompt_password(password)
    db.session.add(admin)
    db.session.commit()
    click.echo(click.style(f'✔ 管理员 {email} 创建成功', fg='green'))


@click.command('create-distributor')
@click.option('--email', prompt=True, help='经销商登录邮箱')
@click.option('--business-name', prompt=True, help='商号')
@click.option('--owner-name', default=None)
@click.option('--phone', default=None)
@click.option('--city', default=None)
@click.option('--state', default=None)
@click.option('--pincode', default=None)
@click.option('--password', default=None, help='密码 (不传则交互输入)')
@click.option('--approved/--pending', default=True, help='是否直接通过审核')
@with_appcontext
def create_distributor(email, business_name, owner_name, phone, city, state, pincode, password, approved):
    """创建经销商账号"""
    email = email.strip().lower()
    if Distributor.query.filter_by(email=email).first():
        click.echo(click.style(f'✘ 邮箱 {email} 已存在', fg='red'))
        return
    distributor = Distributor(
        email=email,
        business_name=business_name,
        owner_name=owner_name,
        phone=phone,
        city=city,
        state=state,
        pincode=pincode,
        is_approved=approved
    )
    distributor.password = _prompt_password(password)
    db.session.add(distributor)
    db.session.commit()
    click.echo(click.style(f'✔ 经销商 {business_name} ({email}) 创建成功', fg='green'))


@click.command('reset-admin-password')
@click.option('--email', prompt=True, help='管理员邮箱')
@click.option('--password', default=None, help='新密码 (不传则交互输入)')
@with_appcontext
def reset_admin_password(email, password):
    """重置管理员密码"""
    admin = User.query.filter_by(email=email.strip().lower(), role=User.ROLE_ADMIN).first()
    if admin is None:
        click.echo(click.style(f'✘ 未找到管理员 {email}', fg='red'))
        return
    admin.password = _prompt_password(password)
    db.session.commit()
    click.echo(click.style(f'✔ 管理员 {admin.email} 密码已重置', fg='green'))
